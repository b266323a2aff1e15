"""Type-converting accessor over loosely typed values (cache entries, session values)."""

from typing import Any


class CastError(ValueError):
    """Raised when a value cannot be converted to the requested type"""
    pass


_TRUE_STRINGS = {"1", "t", "true", "yes", "y", "on"}
_FALSE_STRINGS = {"0", "f", "false", "no", "n", "off", ""}


class Caster:
    """
    Wraps a raw value and converts it on demand.

    Values read back from a JSON-encoded session or from Redis rarely keep
    their original Python type (ints may come back as strings, bytes from a
    client without decode_responses), so every accessor accepts the common
    encodings.
    """

    def __init__(self, value: Any):
        self.value = value

    def is_nil(self) -> bool:
        return self.value is None

    def as_str(self) -> str:
        value = self.value
        if value is None:
            raise CastError("cannot cast None to str")
        if isinstance(value, bytes):
            try:
                return value.decode("utf-8")
            except UnicodeDecodeError as e:
                raise CastError(f"cannot decode bytes: {e}") from e
        if isinstance(value, (dict, list, tuple, set)):
            raise CastError(f"cannot cast {type(value).__name__} to str")
        return str(value)

    def as_int(self) -> int:
        value = self.value
        # bool is an int subclass, keep it explicit
        if isinstance(value, bool):
            return int(value)
        if isinstance(value, int):
            return value
        if isinstance(value, float):
            if not value.is_integer():
                raise CastError(f"cannot cast {value} to int without truncation")
            return int(value)
        try:
            return int(self.as_str().strip())
        except ValueError as e:
            raise CastError(f"cannot cast {value!r} to int") from e

    def as_float(self) -> float:
        value = self.value
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
        try:
            return float(self.as_str().strip())
        except ValueError as e:
            raise CastError(f"cannot cast {value!r} to float") from e

    def as_bool(self) -> bool:
        value = self.value
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float)):
            return value != 0
        text = self.as_str().strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
        raise CastError(f"cannot cast {value!r} to bool")

    def as_str_safe(self, default: str = "") -> str:
        try:
            return self.as_str()
        except CastError:
            return default

    def as_int_safe(self, default: int = 0) -> int:
        try:
            return self.as_int()
        except CastError:
            return default

    def as_float_safe(self, default: float = 0.0) -> float:
        try:
            return self.as_float()
        except CastError:
            return default

    def as_bool_safe(self, default: bool = False) -> bool:
        try:
            return self.as_bool()
        except CastError:
            return default

    def __repr__(self) -> str:
        return f"Caster({self.value!r})"
