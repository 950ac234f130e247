from __future__ import annotations

from typing import Annotated, Any, Sequence

from pydantic import TypeAdapter, ValidationError

from .errors import HeaderValidationError


class ConstraintValidator:
    """Checks a bound value against ``Annotated`` constraint metadata.

    ``None`` is passed through untouched: nilability was already decided by
    the binder and constraints describe the value when one is present.
    """

    def __init__(self, base_type: Any, constraints: Sequence[Any] = ()):
        self.constraints = tuple(constraints)
        self._adapter = None
        if self.constraints:
            self._adapter = TypeAdapter(Annotated[(base_type, *self.constraints)])

    @property
    def active(self) -> bool:
        return self._adapter is not None

    def validate(self, value: Any, header: str) -> Any:
        if self._adapter is None or value is None:
            return value
        try:
            return self._adapter.validate_python(value)
        except ValidationError as e:
            raise HeaderValidationError(header) from e
