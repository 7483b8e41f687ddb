"""Building JSON responses for web clients."""

from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass, field
from typing import Any

from .web_errors import ErrorResponse, WebError, status_text

CONTENT_TYPE = "application/json;charset=utf-8"
NO_CONTENT = 204
INTERNAL_SERVER_ERROR = 500

_ESCAPES = str.maketrans({
    "<": "\\u003c", ">": "\\u003e", "&": "\\u0026", "\u2028": "\\u2028", "\u2029": "\\u2029",
})


@dataclass
class Response:
    """Status code, headers and body of an HTTP response."""

    status_code: int
    body: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)

    def json(self) -> Any:
        """Return the decoded JSON body."""
        return json.loads(self.body)


def _default(obj: Any) -> Any:
    if callable(getattr(obj, "to_dict", None)):
        return obj.to_dict()
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    raise TypeError(f"json: unsupported type: {type(obj).__name__}")


def _marshal(value: Any) -> bytes:
    text = json.dumps(value, default=_default, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    return text.translate(_ESCAPES).encode("utf-8")


def respond(value: Any, status_code: int) -> Response:
    """Serialize a value as a JSON response with the given status code.

    A 204 status gives an empty body; None is sent as an empty object.
    A value that cannot be serialized gives a 500 response describing why.
    """
    if status_code == NO_CONTENT:
        return Response(status_code)
    try:
        data = _marshal({} if value is None else value)
    except (TypeError, ValueError) as exc:
        body = _marshal(ErrorResponse(error="marshal value to json:" + str(exc)).to_dict())
        return Response(INTERNAL_SERVER_ERROR, body)
    return Response(status_code, data, {"Content-Type": CONTENT_TYPE})


def respond_error(err: BaseException | None = None) -> Response:
    """Build the error response for an exception.

    Only a WebError (found directly or through ``__cause__``) sets the status
    and message; anything else becomes 500. Messages of 5xx errors are replaced
    by the status text.
    """
    seen: set[int] = set()
    while err is not None and not isinstance(err, WebError) and id(err) not in seen:
        seen.add(id(err))
        err = err.__cause__

    if isinstance(err, WebError):
        status_code = err.status_code
        message = status_text(status_code) if status_code >= 500 else str(err.err)
        response = ErrorResponse(error=message, fields=list(err.fields))
    else:
        status_code = INTERNAL_SERVER_ERROR
        response = ErrorResponse(error=status_text(status_code))

    return Response(status_code, _marshal(response.to_dict()), {"Content-Type": CONTENT_TYPE})


def respond_500() -> Response:
    """Build an Internal Server Error response."""
    return respond_error(None)