"""
Codec for the free-form invoice sub-documents (line items, attachments).

Over time these payloads have arrived both as JSON values and as strings
holding JSON (or not holding JSON at all). At the boundary every input is
normalized to a StructuredField; only StructuredField is ever encoded.

Stored text that cannot be parsed is never fatal: decode() degrades to the
raw text as a JSON string leaf so the rest of the invoice can still be read.
"""

import json
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RawField:
    """Text exactly as received, not yet interpreted."""

    text: str


@dataclass(frozen=True)
class StructuredField:
    """A JSON value: list, dict, str, number, bool or None."""

    value: Any


FlexibleField = RawField | StructuredField


def _parse(text: str) -> StructuredField:
    try:
        return StructuredField(json.loads(text))
    except (json.JSONDecodeError, RecursionError):
        return StructuredField(text)


def normalize(value: Any) -> StructuredField:
    """
    Convert any boundary input to the canonical structured form.

    Strings are parsed when they hold JSON, otherwise kept as a string leaf.
    """
    if isinstance(value, StructuredField):
        return value
    if isinstance(value, RawField):
        return _parse(value.text)
    if isinstance(value, str):
        return _parse(value)
    return StructuredField(value)


def _default(obj: Any) -> Any:
    if isinstance(obj, Decimal):
        if not obj.is_finite():
            return str(obj)
        if obj == obj.to_integral_value():
            return int(obj)
        # Numbers when a float holds the value exactly, otherwise the digits as a string
        as_float = float(obj)
        return as_float if Decimal(repr(as_float)) == obj else str(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def encode(field: Any) -> str | None:
    """
    Serialize a sub-document to stored text.

    Output is deterministic: keys sorted, compact separators.
    None (nothing to store) encodes to None.
    """
    structured = normalize(field)
    if structured.value is None:
        return None
    return json.dumps(
        structured.value,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=_default,
    )


def decode(text: str | None) -> Any:
    """
    Read stored text back into a JSON value.

    Returns None for NULL or blank text. Malformed text is returned as a
    string leaf rather than raising.
    """
    if text is None or not text.strip():
        return None
    try:
        return json.loads(text)
    except (json.JSONDecodeError, RecursionError) as e:
        logger.warning(f"Stored sub-document is not valid JSON, returning raw text: {e}")
        return text
