"""
Tests for provider chains and the provider table.
"""

import gc
import threading
from typing import Protocol

import pytest

from typedesc.core.attributes import AttributeCollection, CategoryAttribute
from typedesc.core.exceptions import ArgumentMismatchError, ArgumentNullError, ProviderContractError
from typedesc.providers import (
    CustomTypeDescriptor,
    DelegatingTypeDescriptionProvider,
    ReflectionTypeDescriptionProvider,
    TypeDescriptionProvider,
    type_description_provider,
)
from typedesc.registry.table import InterfaceMarker, ProviderTable, is_protocol, lineage


class Shape:
    pass


class Circle(Shape):
    pass


class Drawable(Protocol):
    def draw(self) -> None: ...


class NamedDescriptor(CustomTypeDescriptor):
    def __init__(self, name, parent=None):
        super().__init__(parent)
        self.name = name

    def get_class_name(self):
        return self.name


class NamedProvider(TypeDescriptionProvider):
    """Provider answering its own name as the class name."""

    def __init__(self, name, parent=None):
        super().__init__(parent)
        self.name = name

    def get_type_descriptor(self, object_type=None, instance=None):
        return NamedDescriptor(self.name, super().get_type_descriptor(object_type, instance))

    def __repr__(self):
        return f"<NamedProvider {self.name}>"


class DefaultShapeProvider(NamedProvider):
    def __init__(self):
        super().__init__("default")


@type_description_provider(DefaultShapeProvider)
class Polygon(Shape):
    pass


class Square(Polygon):
    pass


class BrokenProvider(TypeDescriptionProvider):
    def get_type_descriptor(self, object_type=None, instance=None):
        return None


class NoAttributesDescriptor(CustomTypeDescriptor):
    def get_attributes(self):
        return None


class NoAttributesProvider(TypeDescriptionProvider):
    def get_type_descriptor(self, object_type=None, instance=None):
        return NoAttributesDescriptor()


def make_table():
    return ProviderTable(ReflectionTypeDescriptionProvider())


def class_name(table, key):
    node = table.node_for(key)
    if isinstance(key, type):
        return node.get_type_descriptor(key).get_class_name()
    return node.get_type_descriptor(type(key), key).get_class_name()


class TestLineage:
    """Test the lineage searched for provider chains."""

    def test_class(self):
        """Test that a class lineage is its MRO."""
        assert lineage(Circle) == (Circle, Shape, object)

    def test_protocol(self):
        """Test that protocols go through the interface marker."""
        assert is_protocol(Drawable)
        assert not is_protocol(Shape)
        assert lineage(Drawable) == (Drawable, InterfaceMarker, object)

    def test_not_a_class(self):
        """Test that only classes have a lineage."""
        with pytest.raises(TypeError):
            lineage(Circle())


class TestNodeLookup:
    """Test looking nodes up in the table."""

    def test_unregistered_type_resolves_to_root(self):
        """Test that every lineage ends at the reflection provider."""
        table = make_table()
        node = table.node_for_type(Circle)

        assert node.provider is table.root_provider
        assert node is table.node_for_type(object)
        assert class_name(table, Circle).endswith("Circle")

    def test_delegator_for_unregistered_type(self):
        """Test that a delegator is returned on request and follows later registrations."""
        table = make_table()
        delegator = table.node_for_type(Circle, create_delegator=True)

        assert isinstance(delegator.provider, DelegatingTypeDescriptionProvider)
        assert delegator.get_type_descriptor(Circle).get_class_name().endswith("Circle")

        table.add(NamedProvider("shape"), Shape)
        assert delegator.get_type_descriptor(Circle).get_class_name() == "shape"

    def test_none_rejected(self):
        """Test that None keys raise ArgumentNullError."""
        table = make_table()
        with pytest.raises(ArgumentNullError):
            table.node_for_type(None)
        with pytest.raises(ArgumentNullError):
            table.node_for_instance(None)

    def test_protocol_resolves_through_marker(self):
        """Test that a provider registered for the marker answers for protocols."""
        table = make_table()
        table.add(NamedProvider("interfaces"), InterfaceMarker)

        assert class_name(table, Drawable) == "interfaces"
        assert class_name(table, Shape).endswith("Shape")


class TestChains:
    """Test registration order and removal."""

    def test_most_recent_first(self):
        """Test that the newest provider answers first."""
        table = make_table()
        first, second = NamedProvider("A"), NamedProvider("B")
        table.add(first, Shape)
        table.add(second, Shape)

        assert class_name(table, Shape) == "B"
        assert class_name(table, Circle) == "B"
        assert list(table.node_for_type(Shape).iter_providers())[:2] == [second, first]

    def test_remove_restores_previous(self):
        """Test that removing the newest provider restores the previous answer."""
        table = make_table()
        first, second = NamedProvider("A"), NamedProvider("B")
        table.add(first, Shape)
        table.add(second, Shape)

        assert table.remove(second, Shape)
        assert class_name(table, Shape) == "A"

        assert table.remove(first, Shape)
        assert class_name(table, Shape).endswith("Shape")
        assert not table.has_chain(Shape)

    def test_remove_unknown_provider(self):
        """Test that removing a provider that was never added reports False."""
        table = make_table()
        table.add(NamedProvider("A"), Shape)

        assert not table.remove(NamedProvider("A"), Shape)
        assert not table.remove(NamedProvider("A"), Circle)

    def test_handed_out_nodes_follow_removal(self):
        """Test that a node obtained earlier answers with the remaining chain."""
        table = make_table()
        first, second = NamedProvider("A"), NamedProvider("B")
        table.add(first, Shape)
        table.add(second, Shape)
        head = table.node_for_type(Shape)

        table.remove(second, Shape)
        assert head.get_type_descriptor(Shape).get_class_name() == "A"

    def test_remove_middle_provider(self):
        """Test that removing an older provider keeps the newer one in front."""
        table = make_table()
        first, second, third = NamedProvider("A"), NamedProvider("B"), NamedProvider("C")
        for provider in (first, second, third):
            table.add(provider, Shape)

        table.remove(second, Shape)
        assert list(table.node_for_type(Shape).iter_providers())[:2] == [third, first]
        assert class_name(table, Shape) == "C"

    def test_derived_registration_wins(self):
        """Test that a provider on a derived type hides the one on its base."""
        table = make_table()
        table.add(NamedProvider("shape"), Shape)
        table.add(NamedProvider("circle"), Circle)

        assert class_name(table, Circle) == "circle"
        assert class_name(table, Shape) == "shape"

    def test_parent_sees_later_base_registration(self):
        """Test that a provider chained to its bases sees providers added there later."""
        table = make_table()
        table.add(NamedProvider("circle"), Circle)
        circle_head = table.node_for_type(Circle)
        table.remove(circle_head.provider, Circle)

        table.add(NamedProvider("shape"), Shape)
        assert circle_head.get_type_descriptor(Circle).get_class_name() == "shape"

    def test_add_none_rejected(self):
        """Test that provider and key are required."""
        table = make_table()
        with pytest.raises(ArgumentNullError):
            table.add(None, Shape)
        with pytest.raises(ArgumentNullError):
            table.add(NamedProvider("A"), None)
        with pytest.raises(ArgumentNullError):
            table.remove(NamedProvider("A"), None)

    def test_add_during_lookup_is_not_lost(self):
        """Test that a provider added while another thread looks the type up stays visible."""
        table = make_table()
        provider = NamedProvider("late")
        adder = threading.Thread(target=table.add, args=(provider, Circle))

        class Chains(dict):
            def get(self, key, default=None):
                if key is Circle and adder.ident is None:
                    adder.start()
                    adder.join(timeout=0.2)
                return super().get(key, default)

        table._type_chains = Chains(table._type_chains)
        table.node_for_type(Circle)
        adder.join()

        assert class_name(table, Circle) == "late"


class TestInstanceChains:
    """Test providers registered for single instances."""

    def test_instance_provider(self):
        """Test that an instance provider only answers for that instance."""
        table = make_table()
        special, plain = Circle(), Circle()
        table.add(NamedProvider("special"), special)

        assert class_name(table, special) == "special"
        assert class_name(table, plain).endswith("Circle")

    def test_instance_falls_back_to_type_chain(self):
        """Test that an instance chain continues with the chain of its type."""
        table = make_table()
        special = Circle()
        table.add(NamedProvider("special"), special)
        table.add(NamedProvider("circle"), Circle)
        instance_provider = table.node_for_instance(special).provider

        table.remove(instance_provider, special)
        assert class_name(table, special) == "circle"
        assert not table.has_chain(special)

    def test_last_instance_node_delegates_to_type(self):
        """Test that removing the oldest instance provider delegates to the type chain."""
        table = make_table()
        special = Circle()
        older, newer = NamedProvider("older"), NamedProvider("newer")
        table.add(older, special)
        table.add(newer, special)
        table.add(NamedProvider("circle"), Circle)

        table.remove(older, special)
        assert class_name(table, special) == "newer"
        table.remove(newer, special)
        assert class_name(table, special) == "circle"

    def test_instance_chains_are_weak(self):
        """Test that the table does not keep instances alive."""
        table = make_table()
        special = Circle()
        table.add(NamedProvider("special"), special)
        del special
        gc.collect()

        assert table.instance_entries() == []

    def test_non_weak_referenceable_instance(self):
        """Test that builtin values cannot get their own chain."""
        table = make_table()
        with pytest.raises(TypeError):
            table.add(NamedProvider("answer"), 42)


class TestDefaultProviders:
    """Test providers declared with the type_description_provider decorator."""

    def test_declared_provider_is_registered(self):
        """Test that the declared provider answers for the class and derived classes."""
        table = make_table()

        assert class_name(table, Square) == "default"
        assert class_name(table, Polygon) == "default"
        assert table.has_chain(Polygon)
        assert not table.has_chain(Square)

    def test_registered_once(self):
        """Test that the declared provider is only created once."""
        table = make_table()
        table.node_for_type(Polygon)
        table.node_for_type(Square)

        assert len(list(table.node_for_type(Polygon).iter_providers())) == 2


class TestChainContract:
    """Test the checks done by chain nodes."""

    def test_none_descriptor(self):
        """Test that a provider returning no descriptor breaks the contract."""
        table = make_table()
        table.add(BrokenProvider(), Shape)

        with pytest.raises(ProviderContractError, match="get_type_descriptor"):
            table.node_for_type(Shape).get_type_descriptor(Shape).get_attributes()

    def test_none_collection(self):
        """Test that a descriptor returning no attributes breaks the contract."""
        table = make_table()
        table.add(NoAttributesProvider(), Shape)

        with pytest.raises(ProviderContractError) as exc_info:
            table.node_for_type(Shape).get_type_descriptor(Shape).get_attributes()
        assert exc_info.value.operation == "get_attributes"
        assert exc_info.value.provider_name.endswith("NoAttributesProvider")

    def test_instance_type_mismatch(self):
        """Test that the instance must be of the described type."""
        node = make_table().node_for_type(Circle)
        with pytest.raises(ValueError):
            node.get_type_descriptor(Circle, Shape())

    def test_create_instance_argument_mismatch(self):
        """Test that argument types and values must line up."""
        node = make_table().node_for_type(Shape)

        with pytest.raises(ArgumentMismatchError):
            node.create_instance(None, Shape, [int], [])
        with pytest.raises(ArgumentNullError):
            node.create_instance(None, Shape, [int], None)
        assert isinstance(node.create_instance(None, Shape), Shape)

    def test_node_is_a_provider(self):
        """Test that chain nodes can be used as provider parents."""
        table = make_table()
        table.add(NamedProvider("shape"), Shape)
        node = table.node_for_type(Shape)
        wrapper = NamedProvider("wrapper", parent=node)

        assert wrapper.get_type_descriptor(Shape).get_class_name() == "wrapper"
        assert wrapper.get_type_descriptor(Shape).get_attributes() == AttributeCollection()
        assert wrapper.get_type_descriptor(Shape).get_attributes()[CategoryAttribute] == CategoryAttribute()

    def test_editor_asks_current_provider(self):
        """Test that chain descriptors ask the current provider for editors."""
        table = make_table()
        descriptor = table.node_for_type(Shape).get_type_descriptor(Shape)

        assert descriptor.get_editor(NamedDescriptor) is None
        table.root_provider.add_editor_table(NamedDescriptor, {Shape: NamedDescriptor("shape editor")})
        assert descriptor.get_editor(NamedDescriptor).name == "shape editor"
        with pytest.raises(ArgumentNullError):
            descriptor.get_editor(None)
