"""
Tests for the base value converter.
"""

import pytest

from typedesc.core.converters import StandardValuesCollection, TypeConverter
from typedesc.core.exceptions import ArgumentNullError, ConversionNotSupportedError


class ColorConverter(TypeConverter):
    """Converter with a fixed set of standard values."""

    COLORS = ("red", "green", "blue")

    def can_convert_from(self, source_type, context=None):
        return source_type is str

    def convert_from(self, value, context=None, culture=None):
        if value not in self.COLORS:
            raise ValueError(f"Unknown color {value!r}")
        return value

    def get_standard_values(self, context=None):
        return StandardValuesCollection(self.COLORS)

    def get_standard_values_supported(self, context=None):
        return True

    def get_standard_values_exclusive(self, context=None):
        return True


class TestTypeConverter:
    """Test the TypeConverter base class."""

    def test_convert_to_string(self):
        """Test conversion to text."""
        converter = TypeConverter(int)

        assert converter.can_convert_to(str)
        assert not converter.can_convert_to(int)
        assert converter.convert_to(12, str) == "12"
        assert converter.convert_to(None, str) == ""
        assert converter.convert_to_string(3) == "3"

    def test_convert_to_requires_destination(self):
        """Test that a missing destination type is rejected."""
        with pytest.raises(ArgumentNullError):
            TypeConverter(int).convert_to(1, None)

    def test_unsupported_conversions(self):
        """Test that the base converter refuses other conversions."""
        converter = TypeConverter(int)

        assert not converter.can_convert_from(str)
        with pytest.raises(ConversionNotSupportedError):
            converter.convert_from("12")
        with pytest.raises(ConversionNotSupportedError):
            converter.convert_to(12, float)
        with pytest.raises(NotImplementedError):
            converter.convert_from_string("12")

    def test_is_valid(self):
        """Test validity checks."""
        converter = TypeConverter(int)

        assert converter.is_valid(3)
        assert not converter.is_valid("three")
        assert not converter.is_valid(None)

    def test_no_standard_values(self):
        """Test the default standard values contract."""
        converter = TypeConverter(int)

        assert converter.get_standard_values() is None
        assert not converter.get_standard_values_supported()
        assert not converter.get_standard_values_exclusive()
        assert converter.get_properties(3) is None
        assert not converter.get_properties_supported()
        assert converter.create_instance({}) is None
        assert not converter.get_create_instance_supported()


class TestCustomConverter:
    """Test a converter overriding the hooks."""

    def test_standard_values(self):
        """Test a converter offering standard values."""
        converter = ColorConverter(str)
        values = converter.get_standard_values()

        assert list(values) == ["red", "green", "blue"]
        assert values[1] == "green"
        assert len(values) == 3
        assert converter.get_standard_values_exclusive()

    def test_convert_from(self):
        """Test a converter accepting text."""
        converter = ColorConverter()

        assert converter.convert_from_string("red") == "red"
        assert converter.is_valid("blue")
        assert not converter.is_valid("purple")


class TestStandardValuesCollection:
    """Test the StandardValuesCollection class."""

    def test_empty(self):
        """Test a collection built without values."""
        assert len(StandardValuesCollection()) == 0
        assert list(StandardValuesCollection(None)) == []
