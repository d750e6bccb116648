"""Strict JSON decoding shared by the registry client and manifest I/O."""
from __future__ import annotations

import json
from typing import Any


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-standard JSON constant {name!r}")


def loads_strict(text: str) -> Any:
    """Decode RFC 8259 JSON only.

    ``json.loads`` already rejects comments and trailing commas; this also
    rejects ``NaN``, ``Infinity`` and ``-Infinity``.

    Raises:
        ValueError: on any decode error (``json.JSONDecodeError`` included).
    """
    return json.loads(text, parse_constant=_reject_constant)
