"""Helpers for request parameters."""

from __future__ import annotations

import re

from .web_errors import WebError

_INT32_MAX = 2**31 - 1
_DECIMAL = re.compile(r"[+-]?[0-9]+")


def get_id_param(value: str | None) -> int:
    """Parse a positive 32-bit id from a URL parameter.

    Raises WebError with status 400 and message "invalid id" otherwise.
    """
    if value is None or not _DECIMAL.fullmatch(value):
        raise WebError.from_message("invalid id", 400)
    number = int(value)
    if number <= 0 or number > _INT32_MAX:
        raise WebError.from_message("invalid id", 400)
    return number