"""
Tests for member descriptors and descriptor collections.
"""

import gc
import weakref

import pytest

from typedesc.core.attributes import (
    BrowsableAttribute,
    CategoryAttribute,
    DescriptionAttribute,
    DisplayNameAttribute,
    ExtenderProvidedAttribute,
    ReadOnlyAttribute,
    TypeConverterAttribute,
)
from typedesc.core.converters import TypeConverter
from typedesc.core.descriptors import (
    EventDescriptor,
    EventDescriptorCollection,
    ExtenderPropertyDescriptor,
    PropertyDescriptor,
    PropertyDescriptorCollection,
    ReflectEventDescriptor,
    ReflectPropertyDescriptor,
    SimplePropertyDescriptor,
    event,
    sort_descriptor_array,
)
from typedesc.core.exceptions import ArgumentNullError


class Gauge:
    changed = event(str, CategoryAttribute("Behavior"))

    def __init__(self):
        self._level = 0

    @property
    def level(self) -> int:
        return self._level

    @level.setter
    def level(self, value: int) -> None:
        self._level = value

    @property
    def unit(self) -> str:
        return "bar"


class Labeller:
    """Extender contributing a ``Label`` property."""

    def __init__(self):
        self.labels = {}

    def get_Label(self, receiver):
        return self.labels.get(id(receiver), "")

    def set_Label(self, receiver, value):
        self.labels[id(receiver)] = value


class Tagger:
    """Extender contributing a read only ``Tag`` property."""

    def get_Tag(self, receiver):
        return "tagged"


class UpperConverter(TypeConverter):
    pass


class TestMemberDescriptor:
    """Test the attribute backed accessors shared by all descriptors."""

    def test_defaults(self):
        """Test accessors when no attributes are declared."""
        prop = PropertyDescriptor(Gauge, "level", int)

        assert prop.name == "level"
        assert prop.category == "Misc"
        assert prop.description == ""
        assert prop.display_name == "level"
        assert prop.is_browsable
        assert not prop.design_time_only
        assert not prop.is_read_only
        assert not prop.is_extender_provided

    def test_attribute_values(self):
        """Test accessors reading declared attributes."""
        prop = PropertyDescriptor(
            Gauge,
            "level",
            int,
            [
                CategoryAttribute("Data"),
                DescriptionAttribute("Current level"),
                DisplayNameAttribute("Level"),
                BrowsableAttribute(False),
                ReadOnlyAttribute(True),
            ],
        )

        assert prop.category == "Data"
        assert prop.description == "Current level"
        assert prop.display_name == "Level"
        assert not prop.is_browsable
        assert prop.is_read_only

    def test_empty_name_rejected(self):
        """Test that a descriptor must be named."""
        with pytest.raises(ValueError):
            PropertyDescriptor(Gauge, "")

    def test_renamed(self):
        """Test that renaming returns a distinct copy sharing the attributes."""
        prop = PropertyDescriptor(Gauge, "level", int, [CategoryAttribute("Data")])
        clone = prop.renamed("level_1")

        assert clone is not prop
        assert clone.name == "level_1"
        assert prop.name == "level"
        assert clone.attributes is prop.attributes
        assert clone.property_type is int

    def test_with_attributes(self):
        """Test that the copy merges attributes and leaves the original untouched."""
        prop = PropertyDescriptor(Gauge, "level", int, [CategoryAttribute("Data"), DescriptionAttribute("Level")])
        clone = prop.with_attributes(CategoryAttribute("Layout"), BrowsableAttribute(False))

        assert clone is not prop
        assert clone.category == "Layout"
        assert clone.description == "Level"
        assert not clone.is_browsable
        assert prop.category == "Data"
        assert clone.component_type is Gauge
        assert prop.with_attributes(component_type=dict).component_type is dict

    def test_converter(self):
        """Test the converter declared on a property, or the default one."""
        plain = PropertyDescriptor(Gauge, "level", int)
        declared = PropertyDescriptor(Gauge, "level", int, [TypeConverterAttribute(UpperConverter)])

        assert type(plain.converter) is TypeConverter
        assert plain.converter.object_type is int
        assert isinstance(declared.converter, UpperConverter)


class TestPropertyDescriptors:
    """Test reading and writing values through property descriptors."""

    def test_reflect_property(self):
        """Test a descriptor wrapping a Python property with a setter."""
        gauge = Gauge()
        prop = ReflectPropertyDescriptor(Gauge, "level", Gauge.__dict__["level"], int)

        prop.set_value(gauge, 7)
        assert prop.get_value(gauge) == 7
        assert not prop.is_read_only

    def test_reflect_read_only_property(self):
        """Test a descriptor wrapping a property without a setter."""
        gauge = Gauge()
        prop = ReflectPropertyDescriptor(Gauge, "unit", Gauge.__dict__["unit"], str)

        assert prop.is_read_only
        assert prop.get_value(gauge) == "bar"
        with pytest.raises(AttributeError):
            prop.set_value(gauge, "psi")

    def test_simple_property(self):
        """Test a descriptor backed by callables."""
        store = {}
        prop = SimplePropertyDescriptor(
            dict,
            "Alpha",
            int,
            getter=lambda component: store.get("alpha", 0),
            setter=lambda component, value: store.__setitem__("alpha", value),
        )

        prop.set_value({}, 3)
        assert prop.get_value({}) == 3
        assert not prop.is_read_only

    def test_simple_property_without_setter(self):
        """Test that a descriptor without setter is read only."""
        prop = SimplePropertyDescriptor(Gauge, "unit", str)

        assert prop.is_read_only
        assert prop.get_value(Gauge()) == "bar"
        with pytest.raises(AttributeError):
            prop.set_value(Gauge(), "psi")


class TestExtenderPropertyDescriptor:
    """Test the properties contributed by extender providers."""

    def test_tagged_as_extender_provided(self):
        """Test that the descriptor carries the extender tag."""
        labeller = Labeller()
        prop = ExtenderPropertyDescriptor(labeller, Gauge, "Label", str)

        tag = prop.attributes.get(ExtenderProvidedAttribute)
        assert prop.is_extender_provided
        assert tag.provider is labeller
        assert tag.receiver_type is Gauge
        assert prop.extender is labeller

    def test_get_and_set(self):
        """Test that values go through the extender methods."""
        gauge = Gauge()
        labeller = Labeller()
        prop = ExtenderPropertyDescriptor(labeller, Gauge, "Label", str)

        prop.set_value(gauge, "main")
        assert prop.get_value(gauge) == "main"
        assert not prop.is_read_only

    def test_renamed_keeps_extender_methods(self):
        """Test that a renamed copy still calls the original extender methods."""
        gauge = Gauge()
        labeller = Labeller()
        prop = ExtenderPropertyDescriptor(labeller, Gauge, "Label", str)
        clone = prop.renamed("Label_1").renamed("Label_2")

        clone.set_value(gauge, "renamed")
        assert clone.name == "Label_2"
        assert clone.get_value(gauge) == "renamed"
        assert clone.is_extender_provided

    def test_read_only_without_setter(self):
        """Test an extender without a setter method."""
        tagger = Tagger()
        prop = ExtenderPropertyDescriptor(tagger, Gauge, "Tag", str)

        assert prop.is_read_only
        assert prop.get_value(Gauge()) == "tagged"
        with pytest.raises(AttributeError):
            prop.set_value(Gauge(), "other")

    def test_extender_not_kept_alive(self):
        """Test that the descriptor and its tag hold the extender weakly."""
        labeller = Labeller()
        prop = ExtenderPropertyDescriptor(labeller, Gauge, "Label", str)
        ref = weakref.ref(labeller)
        del labeller
        gc.collect()

        assert ref() is None
        assert prop.attributes.get(ExtenderProvidedAttribute).provider is None
        with pytest.raises(ReferenceError):
            prop.get_value(Gauge())


class TestEvents:
    """Test event slots and event descriptors."""

    def test_slot_on_class(self):
        """Test the class level view of an event slot."""
        slot = Gauge.changed

        assert slot.name == "changed"
        assert slot.event_type is str
        assert slot.attributes == (CategoryAttribute("Behavior"),)

    def test_handlers_are_per_instance(self):
        """Test that each instance has its own handler list."""
        first, second = Gauge(), Gauge()
        received = []
        first.changed.add(received.append)

        first.changed.fire("first")
        second.changed.fire("second")

        assert received == ["first"]
        assert len(first.changed) == 1
        assert len(second.changed) == 0

    def test_reflect_event_descriptor(self):
        """Test subscribing through a reflected event descriptor."""
        gauge = Gauge()
        descriptor = ReflectEventDescriptor(Gauge, Gauge.changed, Gauge.changed.attributes)
        received = []

        descriptor.add_handler(gauge, received.append)
        gauge.changed.fire("up")
        descriptor.remove_handler(gauge, received.append)
        gauge.changed.fire("down")

        assert descriptor.name == "changed"
        assert descriptor.event_type is str
        assert descriptor.category == "Behavior"
        assert received == ["up"]

    def test_unbound_slot_rejected(self):
        """Test that a slot never assigned to a class cannot be described."""
        with pytest.raises(ValueError):
            ReflectEventDescriptor(Gauge, event())


class TestDescriptorCollection:
    """Test the immutable descriptor collections."""

    def make_collection(self):
        return PropertyDescriptorCollection(
            [
                PropertyDescriptor(Gauge, "gamma"),
                PropertyDescriptor(Gauge, "Alpha"),
                PropertyDescriptor(Gauge, "beta"),
            ]
        )

    def test_find(self):
        """Test finding descriptors by name."""
        collection = self.make_collection()

        assert collection.find("Alpha").name == "Alpha"
        assert collection.find("alpha") is None
        assert collection.find("alpha", ignore_case=True).name == "Alpha"
        assert collection["beta"].name == "beta"
        assert collection[0].name == "gamma"

    def test_sort(self):
        """Test sorting by name, optionally with leading names."""
        collection = self.make_collection()

        assert collection.sort().names() == ["Alpha", "beta", "gamma"]
        assert collection.sort(["gamma"]).names() == ["gamma", "Alpha", "beta"]
        assert isinstance(collection.sort(), PropertyDescriptorCollection)
        assert collection.names() == ["gamma", "Alpha", "beta"]

    def test_equality_by_element_identity(self):
        """Test that collections are equal only when holding the same descriptors."""
        alpha = PropertyDescriptor(Gauge, "Alpha")

        assert PropertyDescriptorCollection([alpha]) == PropertyDescriptorCollection([alpha])
        assert PropertyDescriptorCollection([alpha]) != PropertyDescriptorCollection(
            [PropertyDescriptor(Gauge, "Alpha")]
        )

    def test_element_type_checked(self):
        """Test that collections reject descriptors of the wrong kind."""
        with pytest.raises(TypeError):
            PropertyDescriptorCollection([EventDescriptor(Gauge, "changed")])
        with pytest.raises(TypeError):
            EventDescriptorCollection([PropertyDescriptor(Gauge, "level")])


class TestSortDescriptorArray:
    """Test the sort_descriptor_array helper."""

    def test_sorts_in_place(self):
        """Test that the list is sorted by name."""
        infos = [PropertyDescriptor(Gauge, "b"), EventDescriptor(Gauge, "a")]
        sort_descriptor_array(infos)

        assert [info.name for info in infos] == ["a", "b"]

    def test_none_rejected(self):
        """Test that a missing list raises ArgumentNullError."""
        with pytest.raises(ArgumentNullError):
            sort_descriptor_array(None)
