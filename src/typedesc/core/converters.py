"""Base value converter.

Concrete converters (enumerations, decimals, cultures...) subclass
:class:`TypeConverter` and override the ``can_*``/``convert_*`` hooks and the
standard values contract.
"""

from __future__ import annotations

from typing import Any, Iterable, Iterator, Optional, Sequence

from .exceptions import ArgumentNullError, ConversionNotSupportedError


class StandardValuesCollection(Sequence[Any]):
    """Read only list of the standard values a converter offers."""

    def __init__(self, values: Optional[Iterable[Any]] = None):
        self._values = tuple(values) if values is not None else ()

    def __getitem__(self, index):  # type: ignore[override]
        return self._values[index]

    def __iter__(self) -> Iterator[Any]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"StandardValuesCollection({list(self._values)!r})"


class TypeConverter:
    """Converts values of ``object_type`` to and from other representations."""

    def __init__(self, object_type: Optional[type] = None):
        self.object_type = object_type

    def can_convert_from(self, source_type: type, context: Any = None) -> bool:
        return False

    def can_convert_to(self, destination_type: type, context: Any = None) -> bool:
        return destination_type is str

    def convert_from(self, value: Any, context: Any = None, culture: Any = None) -> Any:
        raise self._unsupported("from", type(value).__name__ if value is not None else "None")

    def convert_to(
        self, value: Any, destination_type: Optional[type], context: Any = None, culture: Any = None
    ) -> Any:
        if destination_type is None:
            raise ArgumentNullError("destination_type")
        if destination_type is str:
            return "" if value is None else str(value)
        raise self._unsupported("to", destination_type.__name__)

    def convert_from_string(self, text: str, context: Any = None) -> Any:
        return self.convert_from(text, context)

    def convert_to_string(self, value: Any, context: Any = None) -> str:
        return self.convert_to(value, str, context)

    def is_valid(self, value: Any, context: Any = None) -> bool:
        """Return True if ``value`` can be converted by this converter."""
        if value is not None and self.object_type is not None and isinstance(value, self.object_type):
            return True
        try:
            self.convert_from(value, context)
        except (ConversionNotSupportedError, ValueError, TypeError):
            return False
        return True

    def get_standard_values(self, context: Any = None) -> Optional[StandardValuesCollection]:
        return None

    def get_standard_values_supported(self, context: Any = None) -> bool:
        return False

    def get_standard_values_exclusive(self, context: Any = None) -> bool:
        return False

    def get_properties(self, value: Any, context: Any = None, attributes: Any = None) -> Any:
        return None

    def get_properties_supported(self, context: Any = None) -> bool:
        return False

    def create_instance(self, property_values: dict, context: Any = None) -> Any:
        return None

    def get_create_instance_supported(self, context: Any = None) -> bool:
        return False

    def _unsupported(self, direction: str, other: str) -> ConversionNotSupportedError:
        target = self.object_type.__name__ if self.object_type is not None else "object"
        return ConversionNotSupportedError(
            f"{type(self).__name__} cannot convert {target} {direction} {other}"
        )

    def __repr__(self) -> str:
        target = self.object_type.__name__ if self.object_type is not None else None
        return f"{type(self).__name__}({target})"
