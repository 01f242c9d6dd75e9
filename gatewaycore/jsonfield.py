"""Helpers for fields that may hold a JSON document either inline or as a string."""

from __future__ import annotations

import json
from typing import Any


def loads_if_string(value: Any) -> Any:
    """Return ``value``, decoding it first when it is JSON text held in a string.

    Objects and arrays pass through unchanged. Text that is not valid JSON
    raises :class:`ValueError`.
    """
    if isinstance(value, (str, bytes, bytearray)):
        return json.loads(value)
    return value