"""String -> scalar parsers keyed by effective type tag.

The parsers are deliberately narrow (no whitespace trimming, no digit
separators) so a header value either means exactly one thing or fails.
"""
from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, List, Sequence

from .types import TypeTag

_INT_RE = re.compile(r"^[+-]?[0-9]+$")


def _parse_string(raw: str) -> str:
    return raw


def _parse_int(raw: str) -> int:
    if not _INT_RE.match(raw):
        raise ValueError(f"invalid int value '{raw}'")
    return int(raw)


def _parse_float(raw: str) -> float:
    if raw != raw.strip() or "_" in raw:
        raise ValueError(f"invalid float value '{raw}'")
    return float(raw)


def _parse_decimal(raw: str) -> Decimal:
    if raw != raw.strip() or "_" in raw:
        raise ValueError(f"invalid decimal value '{raw}'")
    try:
        value = Decimal(raw)
    except InvalidOperation as e:
        raise ValueError(f"invalid decimal value '{raw}'") from e
    if not value.is_finite():
        raise ValueError(f"invalid decimal value '{raw}'")
    return value


def _parse_boolean(raw: str) -> bool:
    lowered = raw.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    raise ValueError(f"invalid boolean value '{raw}'")


CASTERS: Dict[TypeTag, Callable[[str], Any]] = {
    TypeTag.STRING: _parse_string,
    TypeTag.INT: _parse_int,
    TypeTag.FLOAT: _parse_float,
    TypeTag.DECIMAL: _parse_decimal,
    TypeTag.BOOLEAN: _parse_boolean,
}


def cast_param(tag: TypeTag, raw: str) -> Any:
    try:
        caster = CASTERS[tag]
    except KeyError:
        raise ValueError(f"unsupported type tag: {tag!r}") from None
    return caster(raw)


def cast_param_array(tag: TypeTag, raws: Sequence[str]) -> List[Any]:
    return [cast_param(tag, r) for r in raws]


__all__ = ["CASTERS", "cast_param", "cast_param_array"]
