"""Provider contract.

A :class:`TypeDescriptionProvider` answers metadata queries for a type or an
instance by handing out :class:`CustomTypeDescriptor` objects. Providers may
wrap a ``parent`` provider and delegate every query they do not answer
themselves; a provider without a parent answers with empty results.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional, Sequence

from ..core.attributes import Attribute, AttributeCollection
from ..core.converters import TypeConverter
from ..core.exceptions import ArgumentNullError
from ..core.descriptors import (
    EventDescriptor,
    EventDescriptorCollection,
    PropertyDescriptor,
    PropertyDescriptorCollection,
)

if TYPE_CHECKING:
    from .reflection import ReflectionTypeDescriptionProvider

EMPTY_PROPERTIES = PropertyDescriptorCollection()
EMPTY_EVENTS = EventDescriptorCollection()


class CustomTypeDescriptor:
    """Per-type (or per-instance) metadata answers.

    Every method forwards to ``parent`` when one is given and otherwise
    returns an empty or default answer.
    """

    def __init__(self, parent: Optional["CustomTypeDescriptor"] = None):
        self._parent = parent

    def get_attributes(self) -> AttributeCollection:
        if self._parent is not None:
            return self._parent.get_attributes()
        return AttributeCollection.EMPTY

    def get_class_name(self) -> Optional[str]:
        if self._parent is not None:
            return self._parent.get_class_name()
        return None

    def get_component_name(self) -> Optional[str]:
        if self._parent is not None:
            return self._parent.get_component_name()
        return None

    def get_converter(self) -> TypeConverter:
        if self._parent is not None:
            return self._parent.get_converter()
        return TypeConverter()

    def get_default_event(self) -> Optional[EventDescriptor]:
        if self._parent is not None:
            return self._parent.get_default_event()
        return None

    def get_default_property(self) -> Optional[PropertyDescriptor]:
        if self._parent is not None:
            return self._parent.get_default_property()
        return None

    def get_events(self, attributes: Optional[Sequence[Attribute]] = None) -> EventDescriptorCollection:
        if self._parent is not None:
            return self._parent.get_events(attributes)
        return EMPTY_EVENTS

    def get_properties(
        self, attributes: Optional[Sequence[Attribute]] = None
    ) -> PropertyDescriptorCollection:
        if self._parent is not None:
            return self._parent.get_properties(attributes)
        return EMPTY_PROPERTIES

    def get_editor(self, editor_base_type: type) -> Any:
        """Return an editor deriving from ``editor_base_type``, or None."""
        if self._parent is not None:
            return self._parent.get_editor(editor_base_type)
        return None

    def get_property_owner(self, descriptor: Optional[PropertyDescriptor]) -> Any:
        if self._parent is not None:
            return self._parent.get_property_owner(descriptor)
        return None


class EmptyTypeDescriptor(CustomTypeDescriptor):
    """Descriptor with no metadata at all."""


EMPTY_DESCRIPTOR = EmptyTypeDescriptor()


class MergedTypeDescriptor(CustomTypeDescriptor):
    """Answers from ``primary``, falling back to ``secondary`` on ``None``.

    Used for components that describe themselves: their own answers come
    first, the provider chain fills the gaps.
    """

    def __init__(self, primary: CustomTypeDescriptor, secondary: CustomTypeDescriptor):
        super().__init__()
        self.primary = primary
        self.secondary = secondary

    def _first(self, method: str, *args: Any) -> Any:
        answer = getattr(self.primary, method)(*args)
        if answer is None:
            answer = getattr(self.secondary, method)(*args)
        return answer

    def get_attributes(self) -> AttributeCollection:
        return self._first("get_attributes")

    def get_class_name(self) -> Optional[str]:
        return self._first("get_class_name")

    def get_component_name(self) -> Optional[str]:
        return self._first("get_component_name")

    def get_converter(self) -> TypeConverter:
        return self._first("get_converter")

    def get_default_event(self) -> Optional[EventDescriptor]:
        return self._first("get_default_event")

    def get_default_property(self) -> Optional[PropertyDescriptor]:
        return self._first("get_default_property")

    def get_editor(self, editor_base_type: type) -> Any:
        if editor_base_type is None:
            raise ArgumentNullError("editor_base_type")
        return self._first("get_editor", editor_base_type)

    def get_events(self, attributes: Optional[Sequence[Attribute]] = None) -> EventDescriptorCollection:
        return self._first("get_events", attributes)

    def get_properties(
        self, attributes: Optional[Sequence[Attribute]] = None
    ) -> PropertyDescriptorCollection:
        return self._first("get_properties", attributes)

    def get_property_owner(self, descriptor: Optional[PropertyDescriptor]) -> Any:
        return self._first("get_property_owner", descriptor)


class TypeDescriptionProvider:
    """Base class of all type description providers.

    Parameters
    ----------
    parent : Optional[TypeDescriptionProvider], optional
        Provider receiving every query this provider does not answer itself,
        by default None.
    """

    def __init__(self, parent: Optional["TypeDescriptionProvider"] = None):
        self._parent = parent

    @property
    def parent(self) -> Optional["TypeDescriptionProvider"]:
        return self._parent

    def create_instance(
        self,
        services: Any,
        object_type: type,
        arg_types: Optional[Sequence[type]] = None,
        args: Optional[Sequence[Any]] = None,
    ) -> Any:
        """Create an instance of ``object_type`` with positional ``args``."""
        if self._parent is not None:
            return self._parent.create_instance(services, object_type, arg_types, args)
        return object_type(*(args or ()))

    def get_cache(self, instance: Any) -> Optional[dict]:
        """Return the per-instance dictionary used by the metadata pipeline."""
        if self._parent is not None:
            return self._parent.get_cache(instance)
        return None

    def get_extended_type_descriptor(self, instance: Any) -> CustomTypeDescriptor:
        """Return the descriptor of members other components contribute to ``instance``."""
        if self._parent is not None:
            return self._parent.get_extended_type_descriptor(instance)
        return EMPTY_DESCRIPTOR

    def get_extender_providers(self, instance: Any) -> Sequence[Any]:
        if self._parent is not None:
            return self._parent.get_extender_providers(instance)
        return ()

    def get_full_component_name(self, component: Any) -> Optional[str]:
        if self._parent is not None:
            return self._parent.get_full_component_name(component)
        return self.get_type_descriptor(type(component), component).get_component_name()

    def get_reflection_type(self, object_type: Optional[type] = None, instance: Any = None) -> type:
        if self._parent is not None:
            return self._parent.get_reflection_type(object_type, instance)
        return object_type if object_type is not None else type(instance)

    def get_type_descriptor(self, object_type: Optional[type] = None, instance: Any = None) -> CustomTypeDescriptor:
        """Return the descriptor for ``object_type``, or for ``instance`` when given."""
        if self._parent is not None:
            return self._parent.get_type_descriptor(object_type, instance)
        return EMPTY_DESCRIPTOR

    def is_supported_type(self, object_type: type) -> bool:
        if self._parent is not None:
            return self._parent.is_supported_type(object_type)
        return True

    def as_reflection_provider(self) -> Optional["ReflectionTypeDescriptionProvider"]:
        """Return this provider as the reflection provider, or None if it is not one."""
        return None

    def __repr__(self) -> str:
        return f"<{type(self).__name__}>"
