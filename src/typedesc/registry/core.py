"""Metadata registry: the public entry point of the type description system.

A :class:`MetadataRegistry` owns a provider table, the metadata pipeline, an
association table and the metadata version. Registries are independent of
each other; there is no process-wide instance.
"""

from __future__ import annotations

import itertools
import logging
import threading
import types
from importlib.metadata import entry_points
from typing import Any, Callable, Dict, List, Optional, Sequence, Type, Union

from pydantic import BaseModel, ConfigDict

from ..core.attributes import Attribute, AttributeCollection, DesignerAttribute, declared_attributes
from ..core.components import TypeDescriptorFilterService
from ..core.converters import TypeConverter
from ..core.descriptors import (
    EventDescriptor,
    EventDescriptorCollection,
    EventSlot,
    MemberDescriptor,
    PropertyDescriptor,
    PropertyDescriptorCollection,
    ReflectEventDescriptor,
    ReflectPropertyDescriptor,
    SimplePropertyDescriptor,
    sort_descriptor_array,
)
from ..core.exceptions import ArgumentNullError
from ..core.settings import RegistrySettings
from ..providers.attributes import AttributeProvider
from ..providers.core import CustomTypeDescriptor, MergedTypeDescriptor, TypeDescriptionProvider
from ..providers.reflection import ReflectionTypeDescriptionProvider
from .associations import AssociationTable
from .chain import ChainNode
from .pipeline import MetadataKind, MetadataPipeline, filter_members, freeze
from .table import ProviderTable, lineage

logger = logging.getLogger(__name__)

RefreshHandler = Callable[["RefreshEventArgs"], None]


class RefreshEventArgs(BaseModel):
    """Notification sent to refresh handlers.

    Exactly one of ``component`` (an instance was refreshed) and
    ``type_changed`` (a type was refreshed) is set.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    component: Optional[Any] = None
    type_changed: Optional[Type[Any]] = None


def _describe(key: Any) -> str:
    if isinstance(key, type):
        return f"{key.__module__}.{key.__qualname__}"
    return f"instance of {type(key).__qualname__}"


class MetadataRegistry:
    """Resolves attributes, properties, events and converters of types and instances.

    Parameters
    ----------
    settings : Optional[RegistrySettings], optional
        Registry options, by default the defaults of :class:`RegistrySettings`.
    """

    def __init__(self, settings: Optional[RegistrySettings] = None):
        self.settings = settings if settings is not None else RegistrySettings()
        trace = self.settings.trace
        self._reflection = ReflectionTypeDescriptionProvider(trace=trace)
        self._table = ProviderTable(self._reflection, trace=trace)
        self._pipeline = MetadataPipeline(trace=trace)
        self._associations = AssociationTable(trace=trace)
        self._versions = itertools.count(1)
        self._metadata_version = 0
        self._handlers_lock = threading.Lock()
        self._handlers: List[RefreshHandler] = []
        self._discovered: Dict[str, Type[TypeDescriptionProvider]] = {}
        if self.settings.discover_providers:
            self.discover_providers()

    @property
    def table(self) -> ProviderTable:
        return self._table

    @property
    def pipeline(self) -> MetadataPipeline:
        return self._pipeline

    @property
    def reflection_provider(self) -> ReflectionTypeDescriptionProvider:
        return self._reflection

    @property
    def metadata_version(self) -> int:
        """Counter increased by every refresh that invalidated something."""
        return self._metadata_version

    # Providers

    def add_provider(self, provider: TypeDescriptionProvider, key: Any) -> None:
        """Register ``provider`` for a type or an instance.

        The new provider takes precedence over every provider registered
        before it for ``key``. Registering bumps the metadata version and
        notifies refresh handlers.
        """
        if provider is None:
            raise ArgumentNullError("provider")
        if key is None:
            raise ArgumentNullError("key")
        self._table.add(provider, key)
        logger.info(f"Registered provider {type(provider).__qualname__} for {_describe(key)}")
        self._refresh_key(key, force=True)

    def remove_provider(self, provider: TypeDescriptionProvider, key: Any) -> None:
        """Unregister ``provider`` from ``key``; the remaining providers keep their order."""
        if provider is None:
            raise ArgumentNullError("provider")
        if key is None:
            raise ArgumentNullError("key")
        if self._table.remove(provider, key):
            logger.info(f"Removed provider {type(provider).__qualname__} from {_describe(key)}")
        else:
            logger.warning(f"Provider {type(provider).__qualname__} is not registered for {_describe(key)}")
        self._refresh_key(key, force=True)

    def get_provider(self, key: Any) -> TypeDescriptionProvider:
        """Return the provider answering for ``key``.

        The returned provider keeps following later registrations on the
        bases of ``key``, which makes it suitable as a ``parent``.
        """
        if key is None:
            raise ArgumentNullError("key")
        return self._table.node_for(key, create_delegator=True)

    def add_attributes(self, key: Any, *attrs: Attribute) -> AttributeProvider:
        """Overlay class-level ``attrs`` on ``key`` and return the overlay provider."""
        if key is None:
            raise ArgumentNullError("key")
        provider = AttributeProvider(self.get_provider(key), attrs)
        self.add_provider(provider, key)
        return provider

    def discover_providers(self) -> int:
        """Register the providers published in the configured entry point group.

        Each entry point must load a :class:`TypeDescriptionProvider` subclass
        with a ``describes`` class variable naming the type it describes. The
        class is created with the provider previously answering for that type
        as its only argument.

        Returns
        -------
        int
            Number of providers discovered and registered.
        """
        group = self.settings.entry_point_group
        entrypoints = entry_points(group=group)
        discovered = 0
        for name in entrypoints.names:
            try:
                provider_class = entrypoints[name].load()
                if not (isinstance(provider_class, type) and issubclass(provider_class, TypeDescriptionProvider)):
                    logger.warning(
                        "Tried to discover provider with name '%s' that does not inherit %s",
                        name,
                        TypeDescriptionProvider.__name__,
                    )
                    continue
                target = getattr(provider_class, "describes", None)
                if not isinstance(target, type):
                    logger.warning(f"Provider '{name}' does not name the type it describes")
                    continue
                self.add_provider(provider_class(self.get_provider(target)), target)
                self._discovered[name] = provider_class
                discovered += 1
            except Exception as e:
                logger.error(f"Failed to load provider {name}: {e}")
        return discovered

    def list_discovered(self) -> Dict[str, Type[TypeDescriptionProvider]]:
        """Return the entry point providers registered so far, by entry point name."""
        return dict(self._discovered)

    def chain_of(self, key: Any) -> List[TypeDescriptionProvider]:
        """Return the providers of the chain answering for ``key``, head first."""
        if key is None:
            raise ArgumentNullError("key")
        return list(self._table.node_for(key).iter_providers())

    # Descriptors

    def _type_descriptor(self, component_type: type) -> CustomTypeDescriptor:
        return self._table.node_for_type(component_type).get_type_descriptor(component_type)

    def _instance_descriptor(self, component: Any, no_custom_type_desc: bool) -> CustomTypeDescriptor:
        if component is None:
            raise ArgumentNullError("component")
        descriptor = self._table.node_for_instance(component).get_type_descriptor(type(component), component)
        if not no_custom_type_desc and isinstance(component, CustomTypeDescriptor):
            descriptor = MergedTypeDescriptor(component, descriptor)
        return descriptor

    def _extended_descriptor(self, component: Any) -> CustomTypeDescriptor:
        return self._table.node_for_instance(component).get_extended_type_descriptor(component)

    def _descriptor(self, target: Any, no_custom_type_desc: bool = False) -> CustomTypeDescriptor:
        if target is None:
            raise ArgumentNullError("component")
        if isinstance(target, type):
            return self._type_descriptor(target)
        return self._instance_descriptor(target, no_custom_type_desc)

    @staticmethod
    def _filter_service(component: Any) -> Optional[TypeDescriptorFilterService]:
        site = getattr(component, "site", None)
        if site is None:
            return None
        service = site.get_service(TypeDescriptorFilterService)
        return service if isinstance(service, TypeDescriptorFilterService) else None

    def _run_members(
        self,
        kind: MetadataKind,
        component: Any,
        attrs: Optional[Sequence[Attribute]],
        no_custom_type_desc: bool,
        fetch: Callable[[CustomTypeDescriptor], Any],
    ):
        descriptor = self._instance_descriptor(component, no_custom_type_desc)
        results = fetch(descriptor)
        pipeline = self._pipeline

        # Self-describing components: a baseline pass only merges extenders,
        # the final pass only filters.
        if isinstance(component, CustomTypeDescriptor):
            if no_custom_type_desc:
                extended = fetch(self._extended_descriptor(component))
                results = pipeline.merge(kind, results, extended, component, None)
            else:
                results = pipeline.filter(kind, results, component, None, self._filter_service(component))
                if kind is not MetadataKind.ATTRIBUTES:
                    results = pipeline.attribute_filter(kind, results, attrs, component, None)
            return freeze(kind, results)

        return pipeline.run(
            kind,
            results,
            lambda: fetch(self._extended_descriptor(component)),
            component,
            self.get_cache(component),
            self._filter_service(component),
            attrs,
        )

    def get_attributes(self, component: Any, no_custom_type_desc: bool = False) -> AttributeCollection:
        """Return the class-level attributes of a type or an instance."""
        if component is None:
            raise ArgumentNullError("component")
        if isinstance(component, type):
            return self._type_descriptor(component).get_attributes()
        return self._run_members(
            MetadataKind.ATTRIBUTES, component, None, no_custom_type_desc, lambda d: d.get_attributes()
        )

    def get_properties(
        self,
        component: Any,
        attributes: Optional[Sequence[Attribute]] = None,
        no_custom_type_desc: bool = False,
    ) -> PropertyDescriptorCollection:
        """Return the properties of a type or an instance.

        Parameters
        ----------
        component : Any
            A class, or an instance to run the metadata pipeline for.
        attributes : Optional[Sequence[Attribute]], optional
            Only return the properties satisfying every attribute, by default None.
        no_custom_type_desc : bool, optional
            Ignore the component's own answers when it describes itself, by
            default False.

        Returns
        -------
        PropertyDescriptorCollection
            Immutable collection of property descriptors.
        """
        if component is None:
            raise ArgumentNullError("component")
        if isinstance(component, type):
            properties = self._type_descriptor(component).get_properties(attributes)
            if attributes:
                kept = filter_members(properties, attributes)
                if kept is not None:
                    properties = PropertyDescriptorCollection(kept)
            return properties
        return self._run_members(
            MetadataKind.PROPERTIES,
            component,
            attributes,
            no_custom_type_desc,
            lambda d: d.get_properties(attributes),
        )

    def get_events(
        self,
        component: Any,
        attributes: Optional[Sequence[Attribute]] = None,
        no_custom_type_desc: bool = False,
    ) -> EventDescriptorCollection:
        """Return the events of a type or an instance, optionally filtered by ``attributes``."""
        if component is None:
            raise ArgumentNullError("component")
        if isinstance(component, type):
            events = self._type_descriptor(component).get_events(attributes)
            if attributes:
                kept = filter_members(events, attributes)
                if kept is not None:
                    events = EventDescriptorCollection(kept)
            return events
        return self._run_members(
            MetadataKind.EVENTS,
            component,
            attributes,
            no_custom_type_desc,
            lambda d: d.get_events(attributes),
        )

    def get_converter(self, component: Any, no_custom_type_desc: bool = False) -> TypeConverter:
        return self._descriptor(component, no_custom_type_desc).get_converter()

    def get_class_name(self, component: Any, no_custom_type_desc: bool = False) -> Optional[str]:
        return self._descriptor(component, no_custom_type_desc).get_class_name()

    def get_component_name(self, component: Any, no_custom_type_desc: bool = False) -> Optional[str]:
        return self._instance_descriptor(component, no_custom_type_desc).get_component_name()

    def get_full_component_name(self, component: Any) -> Optional[str]:
        if component is None:
            raise ArgumentNullError("component")
        return self._table.node_for_instance(component).get_full_component_name(component)

    def get_default_property(self, component: Any, no_custom_type_desc: bool = False) -> Optional[PropertyDescriptor]:
        return self._descriptor(component, no_custom_type_desc).get_default_property()

    def get_default_event(self, component: Any, no_custom_type_desc: bool = False) -> Optional[EventDescriptor]:
        return self._descriptor(component, no_custom_type_desc).get_default_event()

    def get_reflection_type(self, target: Any) -> type:
        if target is None:
            raise ArgumentNullError("type")
        if isinstance(target, type):
            return self._table.node_for_type(target).get_reflection_type(target)
        return self._table.node_for_instance(target).get_reflection_type(type(target), target)

    def get_cache(self, instance: Any) -> Optional[dict]:
        """Return the pipeline cache of ``instance``, or None if it cannot have one."""
        if instance is None:
            raise ArgumentNullError("instance")
        return self._table.node_for_instance(instance).get_cache(instance)

    def create_instance(
        self,
        services: Any,
        object_type: type,
        arg_types: Optional[Sequence[type]] = None,
        args: Optional[Sequence[Any]] = None,
    ) -> Any:
        """Create an ``object_type`` through the providers.

        A :class:`TypeDescriptionProvider` offered by ``services`` is asked
        first; the chain of ``object_type`` creates the instance otherwise.
        """
        if object_type is None:
            raise ArgumentNullError("object_type")
        node = self._table.node_for_type(object_type)
        instance = None
        if services is not None and hasattr(services, "get_service"):
            service_provider = services.get_service(TypeDescriptionProvider)
            if service_provider is not None:
                instance = ChainNode(service_provider).create_instance(services, object_type, arg_types, args)
        if instance is None:
            instance = node.create_instance(services, object_type, arg_types, args)
        return instance

    @staticmethod
    def sort_descriptor_array(infos: List[MemberDescriptor]) -> None:
        sort_descriptor_array(infos)

    def create_property(
        self,
        component_type: type,
        existing: Union[str, PropertyDescriptor],
        *attrs: Attribute,
        property_type: type = object,
    ) -> PropertyDescriptor:
        """Bind a property descriptor to ``component_type``.

        Parameters
        ----------
        component_type : type
            The type the new descriptor describes.
        existing : Union[str, PropertyDescriptor]
            A descriptor to copy, or the name of a property (or plain
            attribute) of ``component_type``.
        *attrs : Attribute
            Attributes merged over those of the copied or reflected property.
        property_type : type, optional
            Value type when binding by name, by default object.

        Returns
        -------
        PropertyDescriptor
            A new descriptor; ``existing`` is left untouched.
        """
        if component_type is None:
            raise ArgumentNullError("component_type")
        if existing is None:
            raise ArgumentNullError("existing")
        if isinstance(existing, PropertyDescriptor):
            return existing.with_attributes(*attrs, component_type=component_type)
        member = getattr(component_type, existing, None)
        if isinstance(member, property):
            return ReflectPropertyDescriptor(
                component_type,
                existing,
                member,
                property_type,
                AttributeCollection.from_existing(declared_attributes(member), *attrs),
            )
        return SimplePropertyDescriptor(
            component_type,
            existing,
            property_type,
            attrs,
            setter=lambda component, value: setattr(component, existing, value),
        )

    def create_event(
        self,
        component_type: type,
        existing: Union[str, EventDescriptor],
        *attrs: Attribute,
        event_type: Optional[type] = None,
    ) -> EventDescriptor:
        """Bind an event descriptor to ``component_type``, by copy or by name."""
        if component_type is None:
            raise ArgumentNullError("component_type")
        if existing is None:
            raise ArgumentNullError("existing")
        if isinstance(existing, EventDescriptor):
            return existing.with_attributes(*attrs, component_type=component_type)
        slot = getattr(component_type, existing, None)
        if isinstance(slot, EventSlot):
            declared = tuple(slot.attributes) + declared_attributes(slot)
            return ReflectEventDescriptor(
                component_type, slot, AttributeCollection.from_existing(declared, *attrs)
            )
        return EventDescriptor(component_type, existing, event_type, attrs)

    # Editors and designers

    def add_editor_table(self, editor_base_type: type, table: Dict[type, Any]) -> None:
        """Register the editors used when a class declares none for ``editor_base_type``."""
        if editor_base_type is None:
            raise ArgumentNullError("editor_base_type")
        if table is None:
            raise ArgumentNullError("table")
        if self._reflection.add_editor_table(editor_base_type, table):
            logger.info(f"Registered editor table for {_describe(editor_base_type)}")
        else:
            logger.warning(f"An editor table for {_describe(editor_base_type)} is already registered")

    def get_editor(self, component: Any, editor_base_type: type, no_custom_type_desc: bool = False) -> Any:
        """Return the editor of a type or an instance for ``editor_base_type``, or None."""
        if editor_base_type is None:
            raise ArgumentNullError("editor_base_type")
        return self._descriptor(component, no_custom_type_desc).get_editor(editor_base_type)

    def create_designer(self, component: Any, designer_base_type: type) -> Any:
        """Create the designer ``component`` declares for ``designer_base_type``, or None."""
        if component is None:
            raise ArgumentNullError("component")
        for attr in self.get_attributes(component):
            if isinstance(attr, DesignerAttribute) and attr.designer_base_type is designer_base_type:
                return attr.designer_type()
        return None

    # Associations

    def create_association(self, primary: Any, secondary: Any) -> None:
        self._associations.create(primary, secondary)

    def get_association(self, target_type: type, primary: Any) -> Any:
        return self._associations.get(target_type, primary)

    def remove_association(self, primary: Any, secondary: Any) -> None:
        self._associations.remove(primary, secondary)

    def remove_associations(self, primary: Any) -> None:
        self._associations.remove_all(primary)

    # Refresh

    def add_refresh_handler(self, handler: RefreshHandler) -> None:
        with self._handlers_lock:
            self._handlers.append(handler)

    def remove_refresh_handler(self, handler: RefreshHandler) -> None:
        with self._handlers_lock:
            if handler in self._handlers:
                self._handlers.remove(handler)

    def _raise_refresh(self, args: RefreshEventArgs) -> None:
        self._metadata_version = next(self._versions)
        with self._handlers_lock:
            handlers = list(self._handlers)
        for handler in handlers:
            handler(args)

    def _refresh_reflection(self, object_type: type) -> bool:
        """Drop memoized data of ``object_type`` along its lineage; True if anything was found."""
        found = False
        searched = set(lineage(object_type))
        for key, head in self._table.type_entries():
            if key not in searched:
                continue
            for provider in head.iter_providers():
                reflection = provider.as_reflection_provider()
                if reflection is None:
                    found = True
                    continue
                if reflection.is_populated(object_type):
                    reflection.refresh(object_type)
                    found = True
                break
        return found

    def _clear_instance_caches(self, object_type: type) -> bool:
        cleared = False
        for instance, cache in self._reflection.iter_caches():
            if cache and isinstance(instance, object_type):
                cache.clear()
                cleared = True
        return cleared

    def _refresh_type(self, object_type: type, force: bool = False) -> bool:
        found = self._refresh_reflection(object_type)
        found = self._clear_instance_caches(object_type) or found
        if found or force:
            logger.info(f"Refreshed metadata of {_describe(object_type)}")
            self._raise_refresh(RefreshEventArgs(type_changed=object_type))
        return found

    def _refresh_instance(self, component: Any, force: bool = False) -> bool:
        found = self._refresh_reflection(type(component))
        cache = self._reflection.existing_cache(component)
        if cache is not None:
            cache.clear()
        if found or cache is not None or force:
            logger.info(f"Refreshed metadata of an {_describe(component)}")
            self._raise_refresh(RefreshEventArgs(component=component))
            return True
        return False

    def _refresh_key(self, key: Any, force: bool) -> None:
        if isinstance(key, type):
            self._refresh_type(key, force)
        else:
            self._refresh_instance(key, force)

    def refresh(self, target: Any) -> None:
        """Invalidate the metadata of a class, an instance or a module."""
        if target is None:
            raise ArgumentNullError("target")
        if isinstance(target, types.ModuleType):
            self.refresh_module(target)
        elif isinstance(target, type):
            self._refresh_type(target)
        else:
            self._refresh_instance(target)

    def refresh_module(
        self, module: Union[types.ModuleType, str], include_submodules: bool = False
    ) -> List[type]:
        """Invalidate every type of ``module`` that has memoized metadata.

        One notification is sent per refreshed type.

        Returns
        -------
        List[type]
            The refreshed types.
        """
        if module is None:
            raise ArgumentNullError("module")
        name = module.__name__ if isinstance(module, types.ModuleType) else module
        prefix = f"{name}."

        def in_module(tp: type) -> bool:
            return tp.__module__ == name or (include_submodules and tp.__module__.startswith(prefix))

        refreshed: Dict[type, None] = {}
        for key, head in self._table.type_entries():
            if key is not object and not in_module(key):
                continue
            for provider in head.iter_providers():
                reflection = provider.as_reflection_provider()
                if reflection is None:
                    if key is not object:
                        refreshed[key] = None
                    continue
                for populated in reflection.get_populated_types(name, include_submodules):
                    reflection.refresh(populated)
                    refreshed[populated] = None
                break

        for tp in refreshed:
            self._clear_instance_caches(tp)
            self._raise_refresh(RefreshEventArgs(type_changed=tp))
        if refreshed:
            logger.info(f"Refreshed metadata of {len(refreshed)} types of module {name}")
        return list(refreshed)

    def refresh_package(self, package: Union[types.ModuleType, str]) -> List[type]:
        """Invalidate every type of ``package`` and of its submodules."""
        if package is None:
            raise ArgumentNullError("package")
        return self.refresh_module(package, include_submodules=True)
