"""Build header binding descriptors from a handler signature.

Handlers declare header parameters with ``Annotated``::

    def handler(
        request_id: Annotated[str, Header("X-Request-ID")],
        retries: Annotated[int | None, Header(), Field(ge=0)] = None,
        auth: Annotated[AuthHeaders, Header()],
    ): ...

Every signature parameter owns two feed slots (value + presence) at
``2 * position``, header or not, so the feed lines up with the positional
argument list.
"""
from __future__ import annotations

import collections.abc
import dataclasses
import inspect
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Callable, Dict, List, Literal, MutableSequence, Optional, Tuple, get_args, get_origin, get_type_hints

from pydantic import BaseModel
from typing_extensions import is_typeddict

from .. import config
from ..utils.logging import get_logger
from .errors import HeaderDescriptorError
from .headers import HeaderView, as_header_view
from .params import HeaderBindingSet, new_feed
from .types import FieldDescriptor, HeaderParameter, ParamKind, RecordDescriptor, TypeTag, is_optional, strip_optional

log = get_logger()

_ARRAY_ORIGINS = {list, tuple, set, frozenset, collections.abc.Sequence, collections.abc.Set}


@dataclass(frozen=True)
class Header:
    """Marks a handler parameter as bound from a request header."""

    name: Optional[str] = None
    convert_underscores: Optional[bool] = None

    def header_name(self, param_name: str, convert_underscores: Optional[bool] = None) -> str:
        if self.name:
            return self.name
        if self.convert_underscores is not None:
            convert_underscores = self.convert_underscores
        return header_key_for(param_name, convert_underscores)


def header_key_for(name: str, convert_underscores: Optional[bool] = None) -> str:
    if convert_underscores is None:
        convert_underscores = config.CONVERT_UNDERSCORES
    return name.replace("_", "-") if convert_underscores else name


def _unwrap_annotated(tp: Any) -> Any:
    while get_origin(tp) is Annotated:
        tp = get_args(tp)[0]
    return tp


def scalar_tag(tp: Any) -> Optional[TypeTag]:
    """Effective tag for a scalar type, ``None`` if ``tp`` is not a scalar."""
    tp = _unwrap_annotated(tp)
    if get_origin(tp) is Literal:
        tags = {scalar_tag(type(v)) for v in get_args(tp)}
        if len(tags) == 1 and None not in tags:
            return tags.pop()
        return None
    if not isinstance(tp, type):
        return None
    if issubclass(tp, Enum):
        if issubclass(tp, str):
            return TypeTag.STRING
        if issubclass(tp, int):
            return TypeTag.INT
        return None
    if issubclass(tp, bool):
        return TypeTag.BOOLEAN
    if issubclass(tp, str):
        return TypeTag.STRING
    if issubclass(tp, int):
        return TypeTag.INT
    if issubclass(tp, float):
        return TypeTag.FLOAT
    if issubclass(tp, Decimal):
        return TypeTag.DECIMAL
    return None


def _array_tag(tp: Any) -> Optional[TypeTag]:
    origin = get_origin(tp)
    if origin not in _ARRAY_ORIGINS:
        return None
    args = get_args(tp)
    if origin is tuple:
        if len(args) != 2 or args[1] is not Ellipsis:
            return None
        args = args[:1]
    if len(args) != 1:
        return None
    return scalar_tag(args[0])


def _is_record_type(tp: Any) -> bool:
    if not isinstance(tp, type):
        return False
    if issubclass(tp, BaseModel):
        return True
    return dataclasses.is_dataclass(tp) or is_typeddict(tp)


def resolve_type(tp: Any) -> Tuple[ParamKind, Optional[TypeTag], bool]:
    """Resolve a declared type to ``(kind, effective tag, nilable)``."""
    declared = _unwrap_annotated(tp)
    nilable = is_optional(declared)
    base = _unwrap_annotated(strip_optional(declared))
    tag = scalar_tag(base)
    if tag is not None:
        return ParamKind.SCALAR, tag, nilable
    tag = _array_tag(base)
    if tag is not None:
        return ParamKind.ARRAY, tag, nilable
    if _is_record_type(base):
        return ParamKind.RECORD, None, nilable
    raise HeaderDescriptorError(f"unsupported header type: {tp!r}")


def _record_members(tp: type) -> List[Tuple[str, Any, Optional[str]]]:
    """``(name, annotation, alias)`` for each declared field, in order."""
    if issubclass(tp, BaseModel):
        return [(name, info.annotation, info.alias) for name, info in tp.model_fields.items()]
    hints = get_type_hints(tp, include_extras=True)
    if dataclasses.is_dataclass(tp):
        return [(f.name, hints[f.name], None) for f in dataclasses.fields(tp)]
    return [(name, ann, None) for name, ann in hints.items()]


def build_record_descriptor(tp: type, convert_underscores: Optional[bool] = None) -> RecordDescriptor:
    fields: List[FieldDescriptor] = []
    for name, annotation, alias in _record_members(tp):
        try:
            kind, tag, nilable = resolve_type(annotation)
        except HeaderDescriptorError as e:
            raise HeaderDescriptorError(f"{tp.__name__}.{name}: {e}") from None
        if kind is ParamKind.RECORD:
            raise HeaderDescriptorError(f"{tp.__name__}.{name}: nested record headers are not supported")
        key = alias or name
        fields.append(
            FieldDescriptor(
                name=key,
                header_key=alias or header_key_for(name, convert_underscores),
                effective_type_tag=tag,
                is_array=kind is ParamKind.ARRAY,
                nilable=nilable,
            )
        )
    return RecordDescriptor(target_type=tp, fields=tuple(fields))


def header_parameter(
    name: str,
    annotation: Any,
    feed_index: int,
    marker: Optional[Header] = None,
    *,
    convert_underscores: Optional[bool] = None,
) -> HeaderParameter:
    """Descriptor for one parameter declared as ``Annotated[T, Header(...), *constraints]``
    (or a bare ``T`` when ``marker`` is given separately).

    ``Header(convert_underscores=...)`` wins over ``convert_underscores``; when
    both are ``None`` the configured default applies.
    """
    constraints: Tuple[Any, ...] = ()
    declared = annotation
    if get_origin(annotation) is Annotated:
        args = get_args(annotation)
        declared = args[0]
        for meta in args[1:]:
            if isinstance(meta, Header):
                marker = marker or meta
            else:
                constraints += (meta,)
    marker = marker or Header()
    if marker.convert_underscores is not None:
        convert_underscores = marker.convert_underscores
    kind, tag, nilable = resolve_type(declared)
    record = None
    if kind is ParamKind.RECORD:
        record = build_record_descriptor(_unwrap_annotated(strip_optional(declared)), convert_underscores)
    return HeaderParameter(
        name=name,
        header_name=marker.header_name(name, convert_underscores),
        feed_index=feed_index,
        kind=kind,
        target_type=declared,
        nilable=nilable,
        effective_type_tag=tag,
        record=record,
        constraints=constraints,
    )


def _header_marker(annotation: Any) -> Optional[Header]:
    if get_origin(annotation) is not Annotated:
        return None
    for meta in get_args(annotation)[1:]:
        if isinstance(meta, Header):
            return meta
    return None


def build_header_params(handler: Callable[..., Any], *, convert_underscores: Optional[bool] = None) -> HeaderBindingSet:
    """Analyse ``handler`` once and return its frozen header binding set.

    ``convert_underscores`` applies to every ``Header()`` that does not set its own.
    """
    sig = inspect.signature(handler)
    hints = get_type_hints(handler, include_extras=True)
    binding_set = HeaderBindingSet()
    for position, name in enumerate(sig.parameters):
        annotation = hints.get(name)
        marker = _header_marker(annotation)
        if marker is None:
            continue
        try:
            binding_set.add(header_parameter(name, annotation, 2 * position, convert_underscores=convert_underscores))
        except HeaderDescriptorError as e:
            raise HeaderDescriptorError(f"{getattr(handler, '__qualname__', handler)!s}({name}): {e}") from None
    log.debug(f"{getattr(handler, '__qualname__', handler)}: {len(binding_set)} header parameter(s)")
    return binding_set.freeze()


def kwargs_from_feed(binding_set: HeaderBindingSet, feed: MutableSequence[Any]) -> Dict[str, Any]:
    """``{parameter name: value}`` for every header slot marked present."""
    return {p.name: feed[p.feed_index] for p in binding_set if feed[p.feed_index + 1]}


class HeaderBinder:
    """A handler paired with its header binding set.

    ``bind`` produces the header keyword arguments for one request;
    calling the binder invokes the handler with them.
    """

    def __init__(self, handler: Callable[..., Any], *, convert_underscores: Optional[bool] = None):
        self.handler = handler
        self.signature = inspect.signature(handler)
        self.binding_set = build_header_params(handler, convert_underscores=convert_underscores)

    @property
    def feed_size(self) -> int:
        return 2 * len(self.signature.parameters)

    def populate(self, headers: Any, treat_nilable_as_optional: Optional[bool] = None) -> List[Any]:
        if treat_nilable_as_optional is None:
            treat_nilable_as_optional = config.treat_nilable_as_optional()
        view: HeaderView = as_header_view(headers)
        feed = new_feed(self.feed_size)
        self.binding_set.populate(view, feed, treat_nilable_as_optional)
        return feed

    def bind(self, headers: Any, treat_nilable_as_optional: Optional[bool] = None) -> Dict[str, Any]:
        return kwargs_from_feed(self.binding_set, self.populate(headers, treat_nilable_as_optional))

    def __call__(self, headers: Any, *, treat_nilable_as_optional: Optional[bool] = None, **kwargs: Any) -> Any:
        bound = self.bind(headers, treat_nilable_as_optional)
        return self.handler(**bound, **kwargs)


__all__ = [
    "Header",
    "HeaderBinder",
    "build_header_params",
    "build_record_descriptor",
    "header_key_for",
    "header_parameter",
    "kwargs_from_feed",
    "resolve_type",
    "scalar_tag",
]
