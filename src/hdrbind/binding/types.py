"""Descriptor types for header parameters.

Descriptors are produced once per handler signature and never mutated, so a
single instance is shared by every request hitting that handler.
"""
from __future__ import annotations

import types
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Tuple, Union, get_args, get_origin

from pydantic import TypeAdapter

from .constraints import ConstraintValidator

__all__ = [
    "TypeTag",
    "ParamKind",
    "FieldDescriptor",
    "RecordDescriptor",
    "HeaderParameter",
    "is_optional",
    "strip_optional",
]


class TypeTag(str, Enum):
    STRING = "string"
    INT = "int"
    FLOAT = "float"
    DECIMAL = "decimal"
    BOOLEAN = "boolean"


class ParamKind(str, Enum):
    SCALAR = "scalar"
    ARRAY = "array"
    RECORD = "record"


def is_optional(tp: Any) -> bool:
    origin = get_origin(tp)
    if origin is Union or origin is types.UnionType:
        return type(None) in get_args(tp)
    return tp is type(None)


def strip_optional(tp: Any) -> Any:
    """``Optional[T]`` -> ``T``; anything else is returned unchanged."""
    origin = get_origin(tp)
    if origin is Union or origin is types.UnionType:
        args = tuple(a for a in get_args(tp) if a is not type(None))
        if len(args) == 1:
            return args[0]
        return Union[args]  # type: ignore[return-value]
    return tp


@dataclass(frozen=True)
class FieldDescriptor:
    name: str  # key in the assembled record (alias if declared)
    header_key: str
    effective_type_tag: TypeTag
    is_array: bool = False
    nilable: bool = False


@dataclass(frozen=True)
class RecordDescriptor:
    target_type: Any
    fields: Tuple[FieldDescriptor, ...] = ()

    @property
    def keys(self) -> Tuple[str, ...]:
        return tuple(f.header_key for f in self.fields)

    def get_field(self, index: int) -> FieldDescriptor:
        return self.fields[index]


@dataclass(frozen=True)
class HeaderParameter:
    """One declared header parameter.

    ``kind`` selects the binding path: SCALAR and ARRAY read ``header_name``
    and cast with ``effective_type_tag``; RECORD assembles ``record`` field by
    field. ``target_type`` is the declared type (``Optional`` included) the
    cast value is converted to; ``constraints`` is the extra ``Annotated``
    metadata checked afterwards. The value lands in ``feed[feed_index]`` and
    the presence flag in ``feed[feed_index + 1]``.
    """

    name: str
    header_name: str
    feed_index: int
    kind: ParamKind
    target_type: Any
    nilable: bool = False
    effective_type_tag: Optional[TypeTag] = None
    record: Optional[RecordDescriptor] = None
    constraints: Tuple[Any, ...] = ()
    adapter: Any = field(default=None, compare=False, repr=False)
    validator: Any = field(default=None, compare=False, repr=False)

    def __post_init__(self):
        if self.kind is ParamKind.RECORD:
            if self.record is None:
                raise ValueError(f"record header parameter '{self.name}' needs a record descriptor")
        elif self.effective_type_tag is None:
            raise ValueError(f"header parameter '{self.name}' needs an effective type tag")
        if self.feed_index < 0:
            raise ValueError("feed_index must be non-negative")
        if self.adapter is None:
            object.__setattr__(self, "adapter", TypeAdapter(self.target_type))
        if self.validator is None:
            object.__setattr__(
                self, "validator", ConstraintValidator(strip_optional(self.target_type), self.constraints)
            )

    @property
    def is_array(self) -> bool:
        return self.kind is ParamKind.ARRAY

    @property
    def is_record(self) -> bool:
        return self.kind is ParamKind.RECORD

    @property
    def token(self) -> str:
        return self.header_name

    def constraint_validation(self, value: Any) -> Any:
        return self.validator.validate(value, self.header_name)
