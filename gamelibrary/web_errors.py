"""Errors returned to web clients."""

from __future__ import annotations

from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any

_PHRASE_OVERRIDES = {
    413: "Request Entity Too Large",
    418: "I'm a teapot",
    422: "Unprocessable Entity",
}


def status_text(status_code: int) -> str:
    """Return the standard reason phrase of an HTTP status, or an empty string."""
    if status_code in _PHRASE_OVERRIDES:
        return _PHRASE_OVERRIDES[status_code]
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return ""


@dataclass(frozen=True)
class FieldError:
    """Validation error of one request field."""

    field: str
    error: str

    def to_dict(self) -> dict[str, str]:
        return {"field": self.field, "error": self.error}


@dataclass
class ErrorResponse:
    """Body of an error response."""

    error: str
    fields: list[FieldError] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.error}
        if self.fields:
            body["fields"] = [f.to_dict() for f in self.fields]
        return body


class WebError(Exception):
    """Error carrying an HTTP status code and optional field errors."""

    def __init__(
        self,
        err: Exception | str,
        status_code: int,
        fields: list[FieldError] | None = None,
    ) -> None:
        self.err = err if isinstance(err, Exception) else Exception(err)
        self.status_code = status_code
        self.fields = list(fields or [])
        super().__init__(str(self))

    @classmethod
    def from_message(cls, message: str, status_code: int) -> WebError:
        return cls(message, status_code)

    @classmethod
    def from_status_code(cls, status_code: int) -> WebError:
        return cls(status_text(status_code), status_code)

    def __str__(self) -> str:
        message = str(self.err)
        if self.fields:
            listed = " ".join(f"{{{f.field} {f.error}}}" for f in self.fields)
            message += f" - fields: [{listed}]"
        return message