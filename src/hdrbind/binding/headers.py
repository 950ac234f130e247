"""Header multimap views.

The binder only needs ``getlist(name)``: every value sent for ``name`` in
arrival order, empty when absent. Starlette's ``Headers`` already behaves that
way; other shapes are normalised into one.
"""
from __future__ import annotations

from typing import Any, Iterable, List, Mapping, Protocol, Tuple, runtime_checkable

from starlette.datastructures import Headers


@runtime_checkable
class HeaderView(Protocol):
    def getlist(self, key: str) -> List[str]: ...


def _latin1(text: str, name: str) -> bytes:
    try:
        return text.encode("latin-1")
    except UnicodeEncodeError:
        raise ValueError(f"header {name!r} is not latin-1 encodable: {text!r}") from None


def _raw_pairs(items: Iterable[Tuple[str, Any]]) -> List[Tuple[bytes, bytes]]:
    raw: List[Tuple[bytes, bytes]] = []
    for name, value in items:
        key = _latin1(name.lower(), name)
        if isinstance(value, (list, tuple)):
            raw.extend((key, _latin1(str(v), name)) for v in value)
        else:
            raw.append((key, _latin1(str(value), name)))
    return raw


def as_header_view(source: Any) -> HeaderView:
    """Wrap ``source`` so it answers ``getlist``.

    Accepts anything with ``getlist`` (returned as-is), a mapping of
    ``name -> value | [values]``, or an iterable of ``(name, value)`` pairs.
    ``None`` means no headers at all.
    """
    if source is None:
        return Headers(raw=[])
    if isinstance(source, HeaderView):
        return source
    if isinstance(source, Mapping):
        return Headers(raw=_raw_pairs(source.items()))
    return Headers(raw=_raw_pairs(source))


def parse_header_lines(lines: Iterable[str]) -> HeaderView:
    """Build a view from ``Name: value`` lines; repeated names accumulate."""
    pairs = []
    for line in lines:
        if ":" not in line:
            raise ValueError(f"malformed header line: {line!r}")
        name, value = line.split(":", 1)
        pairs.append((name.strip(), value.strip()))
    return Headers(raw=_raw_pairs(pairs))


__all__ = ["HeaderView", "as_header_view", "parse_header_lines"]
