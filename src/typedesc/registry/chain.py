"""Chain nodes of the provider table.

A :class:`ChainNode` wraps one provider. Its ``next`` link is bookkeeping for
registration and removal only: queries go to ``node.provider``, which is read
again on every call so that handed-out nodes follow later removals.
"""

from __future__ import annotations

from typing import Any, Callable, Optional, Sequence

from ..core.attributes import Attribute, AttributeCollection
from ..core.converters import TypeConverter
from ..core.descriptors import (
    EventDescriptor,
    EventDescriptorCollection,
    PropertyDescriptor,
    PropertyDescriptorCollection,
)
from ..core.exceptions import ArgumentMismatchError, ArgumentNullError, ProviderContractError
from ..providers.core import CustomTypeDescriptor, TypeDescriptionProvider


class ChainNode(TypeDescriptionProvider):
    """Provider chain link forwarding to its current ``provider``."""

    def __init__(self, provider: TypeDescriptionProvider):
        super().__init__()
        self.provider = provider
        self.next: Optional[ChainNode] = None

    def iter_providers(self):
        """Yield the providers of this chain, head first."""
        node: Optional[ChainNode] = self
        while node is not None:
            yield node.provider
            node = node.next

    def create_instance(
        self,
        services: Any,
        object_type: type,
        arg_types: Optional[Sequence[type]] = None,
        args: Optional[Sequence[Any]] = None,
    ) -> Any:
        if object_type is None:
            raise ArgumentNullError("object_type")
        if arg_types is not None:
            if args is None:
                raise ArgumentNullError("args")
            if len(arg_types) != len(args):
                raise ArgumentMismatchError(
                    f"{len(arg_types)} argument types were given for {len(args)} arguments"
                )
        return self.provider.create_instance(services, object_type, arg_types, args)

    def get_cache(self, instance: Any) -> Optional[dict]:
        if instance is None:
            raise ArgumentNullError("instance")
        return self.provider.get_cache(instance)

    def get_extended_type_descriptor(self, instance: Any) -> CustomTypeDescriptor:
        if instance is None:
            raise ArgumentNullError("instance")
        return ChainExtendedTypeDescriptor(self, instance)

    def get_extender_providers(self, instance: Any) -> Sequence[Any]:
        if instance is None:
            raise ArgumentNullError("instance")
        return self.provider.get_extender_providers(instance)

    def get_full_component_name(self, component: Any) -> Optional[str]:
        if component is None:
            raise ArgumentNullError("component")
        return self.provider.get_full_component_name(component)

    def get_reflection_type(self, object_type: Optional[type] = None, instance: Any = None) -> type:
        if object_type is None:
            if instance is None:
                raise ArgumentNullError("object_type")
            object_type = type(instance)
        return self.provider.get_reflection_type(object_type, instance)

    def get_type_descriptor(self, object_type: Optional[type] = None, instance: Any = None) -> CustomTypeDescriptor:
        if object_type is None:
            if instance is None:
                raise ArgumentNullError("object_type")
            object_type = type(instance)
        elif instance is not None and not isinstance(instance, object_type):
            raise ValueError(f"{instance!r} is not an instance of {object_type.__qualname__}")
        return ChainTypeDescriptor(self, object_type, instance)

    def is_supported_type(self, object_type: type) -> bool:
        if object_type is None:
            raise ArgumentNullError("object_type")
        return self.provider.is_supported_type(object_type)

    def __repr__(self) -> str:
        return f"<ChainNode {self.provider!r}>"


class ChainTypeDescriptor(CustomTypeDescriptor):
    """Descriptor asking the node's current provider on every call.

    Collections, converters and descriptors a provider must supply are
    checked, and a ``None`` answer raises :class:`ProviderContractError`.
    """

    def __init__(self, node: ChainNode, object_type: type, instance: Any):
        super().__init__()
        self._node = node
        self._object_type = object_type
        self._instance = instance

    def _descriptor(self) -> CustomTypeDescriptor:
        provider = self._node.provider
        descriptor = provider.get_type_descriptor(self._object_type, self._instance)
        if descriptor is None:
            raise ProviderContractError(provider, "get_type_descriptor")
        return descriptor

    def _required(self, operation: str, call: Callable[[CustomTypeDescriptor], Any]) -> Any:
        answer = call(self._descriptor())
        if answer is None:
            raise ProviderContractError(self._node.provider, operation)
        return answer

    def get_attributes(self) -> AttributeCollection:
        return self._required("get_attributes", lambda d: d.get_attributes())

    def get_class_name(self) -> Optional[str]:
        name = self._descriptor().get_class_name()
        if name is None:
            name = f"{self._object_type.__module__}.{self._object_type.__qualname__}"
        return name

    def get_component_name(self) -> Optional[str]:
        return self._descriptor().get_component_name()

    def get_converter(self) -> TypeConverter:
        return self._required("get_converter", lambda d: d.get_converter())

    def get_default_event(self) -> Optional[EventDescriptor]:
        return self._descriptor().get_default_event()

    def get_default_property(self) -> Optional[PropertyDescriptor]:
        return self._descriptor().get_default_property()

    def get_editor(self, editor_base_type: type) -> Any:
        if editor_base_type is None:
            raise ArgumentNullError("editor_base_type")
        return self._descriptor().get_editor(editor_base_type)

    def get_events(self, attributes: Optional[Sequence[Attribute]] = None) -> EventDescriptorCollection:
        return self._required("get_events", lambda d: d.get_events(attributes))

    def get_properties(
        self, attributes: Optional[Sequence[Attribute]] = None
    ) -> PropertyDescriptorCollection:
        return self._required("get_properties", lambda d: d.get_properties(attributes))

    def get_property_owner(self, descriptor: Optional[PropertyDescriptor]) -> Any:
        return self._descriptor().get_property_owner(descriptor)


class ChainExtendedTypeDescriptor(ChainTypeDescriptor):
    """Extended descriptor asking the node's current provider on every call."""

    def __init__(self, node: ChainNode, instance: Any):
        super().__init__(node, type(instance), instance)

    def _descriptor(self) -> CustomTypeDescriptor:
        provider = self._node.provider
        descriptor = provider.get_extended_type_descriptor(self._instance)
        if descriptor is None:
            raise ProviderContractError(provider, "get_extended_type_descriptor")
        return descriptor

    def get_class_name(self) -> Optional[str]:
        return self._descriptor().get_class_name()
