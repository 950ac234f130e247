"""Header parameter binding.

``HeaderBindingSet`` holds every header parameter declared by one handler and
fills a positional feed from the request headers. Each parameter owns two
adjacent feed slots: the bound value and a presence flag.
"""
from __future__ import annotations

from typing import Any, Dict, Iterator, List, MutableSequence, Optional

from ..utils.logging import get_logger
from .casting import cast_param, cast_param_array
from .errors import HeaderCastError, MissingHeaderError
from .headers import HeaderView
from .types import HeaderParameter, ParamKind

HEADER_PARAM = "header"

log = get_logger()


def new_feed(size: int) -> List[Any]:
    return [None] * size


def _is_empty_value(values: List[str]) -> bool:
    return len(values) == 1 and values[0] == ""


class HeaderBindingSet:
    def __init__(self, params: Optional[List[HeaderParameter]] = None):
        self._params: List[HeaderParameter] = []
        self._frozen = False
        for p in params or ():
            self.add(p)

    @property
    def type_name(self) -> str:
        return HEADER_PARAM

    def add(self, param: HeaderParameter) -> None:
        if self._frozen:
            raise RuntimeError("header binding set is frozen")
        self._params.append(param)

    def freeze(self) -> "HeaderBindingSet":
        self._frozen = True
        self._params = tuple(self._params)  # type: ignore[assignment]
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def params(self) -> tuple:
        return tuple(self._params)

    def is_not_empty(self) -> bool:
        return bool(self._params)

    def __len__(self) -> int:
        return len(self._params)

    def __iter__(self) -> Iterator[HeaderParameter]:
        return iter(self._params)

    @property
    def feed_size(self) -> int:
        """Smallest feed that holds every slot this set writes."""
        return max((p.feed_index + 2 for p in self._params), default=0)

    def get(self, token: str) -> Optional[HeaderParameter]:
        for p in self._params:
            if p.header_name == token:
                return p
        return None

    def populate(self, headers: HeaderView, feed: MutableSequence[Any], treat_nilable_as_optional: bool) -> None:
        """Bind every header parameter into ``feed``.

        Raises ``HeaderBindingError`` (or ``HeaderValidationError`` from a
        constraint) on the first parameter that cannot be bound; slots written
        before the failure are left in place and the feed must be discarded.
        """
        for param in self._params:
            index = param.feed_index
            if param.kind is ParamKind.RECORD:
                parsed = self.assemble_record(param, headers, treat_nilable_as_optional)
                try:
                    casted = param.adapter.validate_python(parsed)
                except (ValueError, TypeError) as e:
                    log.debug(f"record header '{param.header_name}' conversion failed: {e}")
                    raise HeaderCastError(param.header_name) from e
                feed[index] = param.constraint_validation(casted)
                feed[index + 1] = True
                continue

            token = param.header_name
            values = headers.getlist(token)
            if not values:
                if param.nilable and treat_nilable_as_optional:
                    feed[index] = None
                    feed[index + 1] = True
                    continue
                log.debug(f"header '{token}' absent")
                raise MissingHeaderError(token)
            if _is_empty_value(values):
                if param.nilable:
                    feed[index] = None
                    feed[index + 1] = True
                    continue
                log.debug(f"header '{token}' empty")
                raise MissingHeaderError(token)

            tag = param.effective_type_tag
            try:
                if param.kind is ParamKind.ARRAY:
                    parsed = cast_param_array(tag, values)
                else:
                    parsed = cast_param(tag, values[0])
                casted = param.adapter.validate_python(parsed)
            except (ValueError, TypeError) as e:
                log.debug(f"header '{token}' cast failed: {e}")
                raise HeaderCastError(token) from e

            feed[index] = param.constraint_validation(casted)
            feed[index + 1] = True

    def assemble_record(
        self, param: HeaderParameter, headers: HeaderView, treat_nilable_as_optional: bool
    ) -> Optional[Dict[str, Any]]:
        """Collect the fields of a record header parameter.

        Returns ``None`` when a required field is missing and the record itself
        is nilable: the whole record is then treated as not provided.
        """
        record = param.record
        value: Dict[str, Any] = {}
        for field in record.fields:
            key = field.header_key
            values = headers.getlist(key)
            if not values:
                if field.nilable and treat_nilable_as_optional:
                    value[field.name] = None
                    continue
                elif param.nilable:
                    return None
                raise MissingHeaderError(key)
            if _is_empty_value(values):
                if field.nilable:
                    value[field.name] = None
                    continue
                elif param.nilable:
                    return None
                raise MissingHeaderError(key)
            try:
                if field.is_array:
                    value[field.name] = cast_param_array(field.effective_type_tag, values)
                else:
                    value[field.name] = cast_param(field.effective_type_tag, values[0])
            except ValueError as e:
                log.debug(f"record field header '{key}' cast failed: {e}")
                raise HeaderCastError(key) from e
        return value

    def bind(self, headers: HeaderView, treat_nilable_as_optional: bool) -> Dict[str, Any]:
        """Populate a fresh feed and return ``{parameter name: value}``."""
        feed = new_feed(self.feed_size)
        self.populate(headers, feed, treat_nilable_as_optional)
        return {p.name: feed[p.feed_index] for p in self._params}


__all__ = ["HEADER_PARAM", "HeaderBindingSet", "new_feed"]
