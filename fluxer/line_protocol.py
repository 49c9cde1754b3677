from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone

from .errors import InvalidFieldValue


# Float text needs a decimal point or an exponent, so "42" falls through to the integer parse.
_FLOAT_RE = re.compile(r"[+-]?(?:(?:\d+\.\d*|\.\d+)(?:[eE][+-]?\d+)?|\d+[eE][+-]?\d+)")
_INT_RE = re.compile(r"[+-]?\d+")

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Microseconds per unit; nanoseconds are handled as a multiplier.
_PRECISION_DIVISORS = {
    "u": 1,
    "ms": 1_000,
    "s": 1_000_000,
    "m": 60_000_000,
    "h": 3_600_000_000,
}

Pairs = Mapping[str, object] | Iterable[tuple[str, object]]


def to_text(v) -> str:
    if isinstance(v, bytes):
        return v.decode("utf-8")
    return str(v)


def _pairs(items: Pairs | None) -> list[tuple[object, object]]:
    if not items:
        return []
    if isinstance(items, Mapping):
        return list(items.items())
    return list(items)


def encode_value(v) -> str:
    """Render a scalar as a line-protocol token.

    Integers carry the ``i`` suffix so the database does not store them as
    floats. Anything that is not a number or bool is passed through as text.
    """
    if isinstance(v, bool):
        return "true" if v else "false"
    if isinstance(v, int):
        return f"{v}i"
    if isinstance(v, float):
        return repr(v)
    return to_text(v)


def parse_number(text: str) -> int | float:
    """Recover the numeric type of a pre-stringified field value.

    Float is tried first, then integer. Anything else raises InvalidFieldValue.
    """
    s = text.strip()
    if _FLOAT_RE.fullmatch(s):
        return float(s)
    if _INT_RE.fullmatch(s):
        return int(s)
    raise InvalidFieldValue(text)


def encode_field(v) -> str:
    if isinstance(v, (str, bytes)):
        return encode_value(parse_number(to_text(v)))
    return encode_value(v)


def _compose(items: Pairs | None, encode) -> str:
    # Pairs are emitted last-to-first; existing consumers compare exact bytes.
    return ",".join(f"{to_text(k)}={encode(v)}" for k, v in reversed(_pairs(items)))


def _encode_tag(v) -> str:
    if isinstance(v, bool):
        return "true" if v else "false"
    return to_text(v)


def compose_tags(tags: Pairs | None) -> str:
    return _compose(tags, _encode_tag)


def compose_fields(fields: Pairs) -> str:
    out = _compose(fields, encode_field)
    if not out:
        raise ValueError("Need at least one field")
    return out


def to_timestamp(dt: datetime, precision: str | None = None) -> int:
    """Convert *dt* to an integer epoch in the unit named by *precision* (default ns)."""
    if dt.tzinfo is None:
        # Assume UTC if naive.
        dt = dt.replace(tzinfo=timezone.utc)
    delta = dt - _EPOCH
    us = (delta.days * 86_400 + delta.seconds) * 1_000_000 + delta.microseconds
    if precision in (None, "", "n", "ns"):
        return us * 1_000
    try:
        return us // _PRECISION_DIVISORS[precision]
    except KeyError:
        raise ValueError(f"Unknown precision: {precision!r}") from None


def _timestamp_text(timestamp, precision: str | None) -> str:
    if isinstance(timestamp, datetime):
        return str(to_timestamp(timestamp, precision))
    return to_text(timestamp)


def build_simple_line(measurement, value) -> str:
    return f"{to_text(measurement)} value={encode_field(value)}"


def build_line(measurement, tags: Pairs | None, fields: Pairs) -> str:
    m = to_text(measurement)
    tag_part = compose_tags(tags)
    field_part = compose_fields(fields)
    if not tag_part:
        return f"{m} {field_part}"
    return f"{m},{tag_part} {field_part}"


def build_line_with_timestamp(
    measurement,
    tags: Pairs | None,
    fields: Pairs,
    timestamp,
    precision: str | None = None,
) -> str:
    line = build_line(measurement, tags, fields)
    if timestamp is None:
        return line
    return f"{line} {_timestamp_text(timestamp, precision)}"


def build_batch(records: Iterable[tuple], precision: str | None = None) -> str:
    """Join ``(measurement, tags, fields, timestamp)`` records into one payload.

    No trailing newline; an empty input gives an empty payload.
    """
    return "\n".join(
        build_line_with_timestamp(measurement, tags, fields, timestamp, precision)
        for measurement, tags, fields, timestamp in records
    )
