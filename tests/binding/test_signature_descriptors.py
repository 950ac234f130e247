"""Descriptor construction from handler signatures."""
from decimal import Decimal
from enum import Enum, IntEnum
from typing import Annotated, FrozenSet, List, Literal, Optional, Tuple

import pytest
from pydantic import BaseModel, Field

from hdrbind.binding.errors import HeaderCastError, HeaderDescriptorError, MissingHeaderError
from hdrbind.binding.signature import Header, HeaderBinder, build_header_params, kwargs_from_feed, resolve_type
from hdrbind.binding.types import ParamKind, TypeTag


class Color(str, Enum):
    RED = "red"
    BLUE = "blue"


class Level(IntEnum):
    LOW = 1
    HIGH = 2


class Inner(BaseModel):
    x_a: str


class Nested(BaseModel):
    inner: Inner


def mixed(
    path_id: int,
    request_id: Annotated[str, Header("X-Request-ID")],
    body: dict,
    x_retry: Annotated[Optional[int], Header()] = None,
    tags: Annotated[List[str], Header("x-tag")] = (),
):
    return request_id, x_retry, tags


def typed(
    color: Annotated[Color, Header("x-color")],
    level: Annotated[Level, Header("x-level")],
    mode: Annotated[Literal["fast", "slow"], Header("x-mode")],
    ids: Annotated[Tuple[int, ...], Header("x-id")],
    flags: Annotated[FrozenSet[bool], Header("x-flag")],
    price: Annotated[Decimal, Header("x-price")],
):
    return color, level, mode, ids, flags, price


def test_feed_index_follows_signature_position():
    bs = build_header_params(mixed)
    assert [(p.name, p.feed_index) for p in bs] == [("request_id", 2), ("x_retry", 6), ("tags", 8)]
    assert bs.frozen
    assert bs.get("X-Request-ID").kind is ParamKind.SCALAR
    assert bs.get("x-retry").nilable
    assert bs.get("x-tag").is_array


def test_convert_underscores_off():
    def handler(x_trace: Annotated[str, Header(convert_underscores=False)]):
        return x_trace

    assert build_header_params(handler).params[0].header_name == "x_trace"


def test_convert_underscores_keyword():
    def handler(
        x_trace: Annotated[str, Header()],
        x_span: Annotated[str, Header(convert_underscores=True)],
        inner: Annotated[Inner, Header()],
    ):
        return x_trace

    bs = build_header_params(handler, convert_underscores=False)
    assert [p.header_name for p in bs.params] == ["x_trace", "x-span", "inner"]
    assert [f.header_key for f in bs.params[2].record.fields][0] == "x_a"
    binder = HeaderBinder(handler, convert_underscores=False)
    assert binder.binding_set.params[0].header_name == "x_trace"


def test_resolve_type_tags():
    assert resolve_type(str) == (ParamKind.SCALAR, TypeTag.STRING, False)
    assert resolve_type(Optional[bool]) == (ParamKind.SCALAR, TypeTag.BOOLEAN, True)
    assert resolve_type(int | None) == (ParamKind.SCALAR, TypeTag.INT, True)
    assert resolve_type(List[float]) == (ParamKind.ARRAY, TypeTag.FLOAT, False)
    assert resolve_type(Literal[1, 2]) == (ParamKind.SCALAR, TypeTag.INT, False)
    assert resolve_type(Optional[Inner]) == (ParamKind.RECORD, None, True)


@pytest.mark.parametrize("tp", [dict, List[List[int]], Tuple[int, str], Literal["a", 1], bytes])
def test_unsupported_types_rejected(tp):
    with pytest.raises(HeaderDescriptorError):
        resolve_type(tp)


def test_nested_record_rejected_at_build_time():
    def handler(n: Annotated[Nested, Header()]):
        return n

    with pytest.raises(HeaderDescriptorError) as ei:
        build_header_params(handler)
    assert "Nested.inner" in str(ei.value)


def test_typed_conversion():
    binder = HeaderBinder(typed)
    headers = [
        ("x-color", "blue"),
        ("x-level", "2"),
        ("x-mode", "slow"),
        ("x-id", "4"),
        ("x-id", "5"),
        ("x-flag", "true"),
        ("x-flag", "TRUE"),
        ("x-price", "1.25"),
    ]
    color, level, mode, ids, flags, price = binder(headers)
    assert color is Color.BLUE
    assert level is Level.HIGH
    assert mode == "slow"
    assert ids == (4, 5)
    assert flags == frozenset({True})
    assert price == Decimal("1.25")


def test_literal_mismatch_is_cast_error():
    binder = HeaderBinder(typed)
    with pytest.raises(HeaderCastError) as ei:
        binder.bind({"x-color": "green"})
    assert ei.value.message == "header binding failed for parameter: 'x-color'"


def test_binder_kwargs_and_policy_override():
    binder = HeaderBinder(mixed)
    feed = binder.populate({"X-Request-ID": "r1", "x-tag": ["a", "b"]}, treat_nilable_as_optional=True)
    assert len(feed) == 10
    assert feed[0] is None and feed[4] is None
    assert kwargs_from_feed(binder.binding_set, feed) == {"request_id": "r1", "x_retry": None, "tags": ["a", "b"]}
    with pytest.raises(MissingHeaderError):
        binder.bind({"X-Request-ID": "r1", "x-tag": "a"}, treat_nilable_as_optional=False)


def test_binder_uses_env_policy(monkeypatch):
    binder = HeaderBinder(mixed)
    monkeypatch.setenv("HDRBIND_TREAT_NILABLE_AS_OPTIONAL", "false")
    with pytest.raises(MissingHeaderError):
        binder.bind({"X-Request-ID": "r1", "x-tag": "a"})
    monkeypatch.setenv("HDRBIND_TREAT_NILABLE_AS_OPTIONAL", "true")
    assert binder.bind({"X-Request-ID": "r1", "x-tag": "a"})["x_retry"] is None


def test_constraints_kept_out_of_target_type():
    def handler(n: Annotated[Optional[int], Header("x-n"), Field(gt=0)] = None):
        return n

    p = build_header_params(handler).params[0]
    assert p.target_type == Optional[int]
    assert len(p.constraints) == 1
    assert p.validator.active
    assert HeaderBinder(handler)({"x-n": ""}, treat_nilable_as_optional=False) is None
