"""Reflection provider: the root of every provider chain.

Metadata is read from the classes themselves: attributes attached with the
:func:`~typedesc.core.attributes.attributes` decorator, ``property`` objects
and :class:`~typedesc.core.descriptors.EventSlot` declarations. What is read
for a class is memoized until :meth:`ReflectionTypeDescriptionProvider.refresh`
is called for it.
"""

from __future__ import annotations

import logging
import threading
import typing
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..core.attributes import (
    Attribute,
    AttributeCollection,
    DefaultEventAttribute,
    DefaultPropertyAttribute,
    ProvidePropertyAttribute,
    TypeConverterAttribute,
    declared_attributes,
    find_editor_type,
)
from ..core.components import ExtenderListService, ExtenderProvider
from ..core.converters import TypeConverter
from ..core.descriptors import (
    EventDescriptor,
    EventDescriptorCollection,
    EventSlot,
    ExtenderPropertyDescriptor,
    PropertyDescriptor,
    PropertyDescriptorCollection,
    ReflectEventDescriptor,
    ReflectPropertyDescriptor,
)
from ..core.weak import IdentityWeakMap, is_weak_referenceable
from .core import EMPTY_PROPERTIES, CustomTypeDescriptor, TypeDescriptionProvider

logger = logging.getLogger(__name__)


def _property_type(prop: property) -> type:
    if prop.fget is None:
        return object
    try:
        hints = typing.get_type_hints(prop.fget)
    except (NameError, TypeError):
        return object
    annotation = hints.get("return", object)
    return annotation if isinstance(annotation, type) else object


class _ReflectedTypeData:
    """Everything read from one class, built lazily."""

    def __init__(self, object_type: type):
        self.object_type = object_type
        self._attributes: Optional[AttributeCollection] = None
        self._properties: Optional[PropertyDescriptorCollection] = None
        self._events: Optional[EventDescriptorCollection] = None
        self._converter: Optional[TypeConverter] = None
        self._extended: IdentityWeakMap[Tuple[ExtenderPropertyDescriptor, ...]] = IdentityWeakMap()
        self._editors: Dict[type, Any] = {}

    @property
    def attributes(self) -> AttributeCollection:
        if self._attributes is None:
            merged: List[Attribute] = []
            for cls in reversed(self.object_type.__mro__):
                merged = list(AttributeCollection.from_existing(merged, *declared_attributes(cls)))
            self._attributes = AttributeCollection(merged)
        return self._attributes

    def _members(self, kind: type) -> Dict[str, Any]:
        members: Dict[str, Any] = {}
        for cls in reversed(self.object_type.__mro__):
            for name, value in vars(cls).items():
                if name.startswith("_"):
                    continue
                if isinstance(value, kind):
                    members[name] = value
                elif name in members:
                    # Shadowed by something that is not a member anymore.
                    del members[name]
        return members

    @property
    def properties(self) -> PropertyDescriptorCollection:
        if self._properties is None:
            self._properties = PropertyDescriptorCollection(
                ReflectPropertyDescriptor(
                    self.object_type, name, prop, _property_type(prop), declared_attributes(prop)
                )
                for name, prop in self._members(property).items()
            )
        return self._properties

    @property
    def events(self) -> EventDescriptorCollection:
        if self._events is None:
            self._events = EventDescriptorCollection(
                ReflectEventDescriptor(
                    self.object_type, slot, tuple(slot.attributes) + declared_attributes(slot)
                )
                for slot in self._members(EventSlot).values()
            )
        return self._events

    @property
    def converter(self) -> TypeConverter:
        if self._converter is None:
            declared = self.attributes.get(TypeConverterAttribute)
            if declared is not None and declared.converter_type is not None:
                self._converter = declared.converter_type(self.object_type)
            else:
                self._converter = TypeConverter(self.object_type)
        return self._converter

    def editor(self, editor_base_type: type, table: Optional[Dict[type, Any]]) -> Any:
        """Return the editor declared on the class, else the one ``table`` maps its lineage to."""
        editor = self._editors.get(editor_base_type)
        if editor is not None:
            return editor
        editor_type = find_editor_type(self.attributes, editor_base_type)
        if editor_type is not None:
            editor = editor_type()
        elif table:
            for cls in self.object_type.__mro__:
                if cls in table:
                    entry = table[cls]
                    editor = entry() if isinstance(entry, type) else entry
                    break
        # Misses are not memoized: an editor table may be added later.
        if editor is not None:
            self._editors[editor_base_type] = editor
        return editor

    def extended_properties(
        self, extender: Any, extender_attributes: AttributeCollection
    ) -> Tuple[ExtenderPropertyDescriptor, ...]:
        if extender in self._extended:
            return self._extended[extender]
        provided = []
        for attr in extender_attributes:
            if not isinstance(attr, ProvidePropertyAttribute):
                continue
            if not issubclass(self.object_type, attr.receiver_type):
                continue
            getter = getattr(type(extender), f"get_{attr.property_name}", None)
            provided.append(
                ExtenderPropertyDescriptor(
                    extender,
                    self.object_type,
                    attr.property_name,
                    attr.property_type,
                    declared_attributes(getter) if getter is not None else (),
                )
            )
        descriptors = tuple(provided)
        if is_weak_referenceable(extender):
            self._extended[extender] = descriptors
        return descriptors


class _ReflectedTypeDescriptor(CustomTypeDescriptor):
    def __init__(self, provider: "ReflectionTypeDescriptionProvider", object_type: type, instance: Any):
        super().__init__()
        self._provider = provider
        self._object_type = object_type
        self._instance = instance

    @property
    def _data(self) -> _ReflectedTypeData:
        return self._provider.type_data(self._object_type)

    def get_attributes(self) -> AttributeCollection:
        return self._data.attributes

    def get_class_name(self) -> Optional[str]:
        return f"{self._object_type.__module__}.{self._object_type.__qualname__}"

    def get_component_name(self) -> Optional[str]:
        site = getattr(self._instance, "site", None)
        return getattr(site, "name", None)

    def get_converter(self) -> TypeConverter:
        return self._data.converter

    def get_default_event(self) -> Optional[EventDescriptor]:
        default = self._data.attributes.get(DefaultEventAttribute)
        if default is None or default.name is None:
            return None
        return self._data.events.find(default.name)

    def get_default_property(self) -> Optional[PropertyDescriptor]:
        default = self._data.attributes.get(DefaultPropertyAttribute)
        if default is None or default.name is None:
            return None
        return self._data.properties.find(default.name)

    def get_editor(self, editor_base_type: type) -> Any:
        return self._data.editor(editor_base_type, self._provider.editor_table(editor_base_type))

    def get_events(self, attributes: Optional[Sequence[Attribute]] = None) -> EventDescriptorCollection:
        return self._data.events

    def get_properties(
        self, attributes: Optional[Sequence[Attribute]] = None
    ) -> PropertyDescriptorCollection:
        return self._data.properties

    def get_property_owner(self, descriptor: Optional[PropertyDescriptor]) -> Any:
        return self._instance


class _ExtendedTypeDescriptor(CustomTypeDescriptor):
    def __init__(self, provider: "ReflectionTypeDescriptionProvider", instance: Any):
        super().__init__()
        self._provider = provider
        self._instance = instance

    def get_properties(
        self, attributes: Optional[Sequence[Attribute]] = None
    ) -> PropertyDescriptorCollection:
        return self._provider.get_extended_properties(self._instance)

    def get_property_owner(self, descriptor: Optional[PropertyDescriptor]) -> Any:
        if isinstance(descriptor, ExtenderPropertyDescriptor):
            return descriptor.extender
        return self._instance


class ReflectionTypeDescriptionProvider(TypeDescriptionProvider):
    """Provider reading metadata from classes.

    Parameters
    ----------
    trace : bool, optional
        Log type data population at DEBUG level, by default False.
    """

    def __init__(self, trace: bool = False):
        super().__init__()
        self._trace = trace
        self._lock = threading.Lock()
        self._type_data: Dict[type, _ReflectedTypeData] = {}
        self._caches: IdentityWeakMap[dict] = IdentityWeakMap()
        self._editor_tables: Dict[type, Dict[type, Any]] = {}

    def as_reflection_provider(self) -> "ReflectionTypeDescriptionProvider":
        return self

    def type_data(self, object_type: type) -> _ReflectedTypeData:
        """Return the memoized data of ``object_type``, creating it on first use."""
        data = self._type_data.get(object_type)
        if data is None:
            with self._lock:
                data = self._type_data.get(object_type)
                if data is None:
                    data = _ReflectedTypeData(object_type)
                    self._type_data[object_type] = data
                    if self._trace:
                        logger.debug(f"Reflecting over {object_type.__qualname__}")
        return data

    def is_populated(self, object_type: type) -> bool:
        """Return True if data for exactly ``object_type`` is memoized."""
        return object_type in self._type_data

    def refresh(self, object_type: type) -> None:
        """Drop the memoized data of ``object_type``."""
        with self._lock:
            self._type_data.pop(object_type, None)

    def add_editor_table(self, editor_base_type: type, table: Dict[type, Any]) -> bool:
        """Register the fallback editors for ``editor_base_type``.

        ``table`` maps classes to editor classes or editor instances and is
        searched along the MRO of the edited class. Only the first table
        registered for an editor base type is kept.

        Returns
        -------
        bool
            True if ``table`` was registered.
        """
        with self._lock:
            if editor_base_type in self._editor_tables:
                return False
            self._editor_tables[editor_base_type] = table
        return True

    def editor_table(self, editor_base_type: type) -> Optional[Dict[type, Any]]:
        return self._editor_tables.get(editor_base_type)

    def get_populated_types(self, module_name: str, include_submodules: bool = False) -> List[type]:
        """Return the memoized types defined in ``module_name``."""
        prefix = f"{module_name}."
        with self._lock:
            populated = list(self._type_data)
        return [
            tp
            for tp in populated
            if tp.__module__ == module_name or (include_submodules and tp.__module__.startswith(prefix))
        ]

    def get_cache(self, instance: Any) -> Optional[dict]:
        if not is_weak_referenceable(instance):
            return None
        cache = self._caches.get(instance)
        if cache is None:
            with self._lock:
                cache = self._caches.setdefault(instance, {})
        return cache

    def existing_cache(self, instance: Any) -> Optional[dict]:
        """Return the cache of ``instance`` if one was created, without creating it."""
        if not is_weak_referenceable(instance):
            return None
        return self._caches.get(instance)

    def iter_caches(self) -> List[Tuple[Any, dict]]:
        """Return the live ``(instance, cache)`` pairs."""
        return self._caches.items_snapshot()

    def get_type_descriptor(self, object_type: Optional[type] = None, instance: Any = None) -> CustomTypeDescriptor:
        if object_type is None:
            object_type = type(instance)
        return _ReflectedTypeDescriptor(self, object_type, instance)

    def get_extended_type_descriptor(self, instance: Any) -> CustomTypeDescriptor:
        return _ExtendedTypeDescriptor(self, instance)

    def get_extender_providers(self, instance: Any) -> Sequence[Any]:
        site = getattr(instance, "site", None)
        if site is None:
            return ()
        service = site.get_service(ExtenderListService)
        if service is not None:
            return tuple(service.get_extender_providers())
        container = getattr(site, "container", None)
        if container is None:
            return ()
        return tuple(c for c in container.components if isinstance(c, ExtenderProvider))

    def get_extended_properties(self, instance: Any) -> PropertyDescriptorCollection:
        """Return the properties extenders contribute to ``instance``."""
        extenders = self.get_extender_providers(instance)
        if not extenders:
            return EMPTY_PROPERTIES
        data = self.type_data(type(instance))
        provided: List[ExtenderPropertyDescriptor] = []
        for extender in extenders:
            if extender is instance or not extender.can_extend(instance):
                continue
            extender_attributes = self.type_data(type(extender)).attributes
            provided.extend(data.extended_properties(extender, extender_attributes))
        return PropertyDescriptorCollection(provided)

    def get_full_component_name(self, component: Any) -> Optional[str]:
        site = getattr(component, "site", None)
        return getattr(site, "name", None)

    def get_reflection_type(self, object_type: Optional[type] = None, instance: Any = None) -> type:
        return object_type if object_type is not None else type(instance)

    def is_supported_type(self, object_type: type) -> bool:
        return True
