"""Pass-through provider resolving its target on every call."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional, Sequence

from .core import CustomTypeDescriptor, TypeDescriptionProvider

if TYPE_CHECKING:
    from ..registry.table import ProviderTable


class DelegatingTypeDescriptionProvider(TypeDescriptionProvider):
    """Forwards every query to the provider currently registered for a type.

    The target is looked up on each call, so providers registered later on
    ``object_type`` or its ancestors are seen by whoever holds this provider.

    Parameters
    ----------
    table : ProviderTable
        The table the target is resolved in.
    object_type : type
        Type whose provider receives the queries.
    inclusive : bool, optional
        Resolve starting at ``object_type`` itself; otherwise start at the
        next type of its lineage, by default True.
    """

    def __init__(self, table: "ProviderTable", object_type: type, inclusive: bool = True):
        super().__init__()
        self._table = table
        self.object_type = object_type
        self.inclusive = inclusive

    @property
    def provider(self) -> TypeDescriptionProvider:
        """The provider queries are currently forwarded to."""
        return self._table.resolve(self.object_type, inclusive=self.inclusive)

    def create_instance(
        self,
        services: Any,
        object_type: type,
        arg_types: Optional[Sequence[type]] = None,
        args: Optional[Sequence[Any]] = None,
    ) -> Any:
        return self.provider.create_instance(services, object_type, arg_types, args)

    def get_cache(self, instance: Any) -> Optional[dict]:
        return self.provider.get_cache(instance)

    def get_extended_type_descriptor(self, instance: Any) -> CustomTypeDescriptor:
        return self.provider.get_extended_type_descriptor(instance)

    def get_extender_providers(self, instance: Any) -> Sequence[Any]:
        return self.provider.get_extender_providers(instance)

    def get_full_component_name(self, component: Any) -> Optional[str]:
        return self.provider.get_full_component_name(component)

    def get_reflection_type(self, object_type: Optional[type] = None, instance: Any = None) -> type:
        return self.provider.get_reflection_type(object_type, instance)

    def get_type_descriptor(self, object_type: Optional[type] = None, instance: Any = None) -> CustomTypeDescriptor:
        return self.provider.get_type_descriptor(object_type, instance)

    def is_supported_type(self, object_type: type) -> bool:
        return self.provider.is_supported_type(object_type)

    def __repr__(self) -> str:
        scope = "" if self.inclusive else " (bases)"
        return f"<DelegatingTypeDescriptionProvider {self.object_type.__qualname__}{scope}>"
