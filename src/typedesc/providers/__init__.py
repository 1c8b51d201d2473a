"""Type description providers.

The reflection provider sits at the root of every chain; the other providers
either overlay it (attribute overlays, user providers) or point back into the
provider table (delegating providers).
"""

from typing import Callable, Type, TypeVar

from ..core.attributes import TypeDescriptionProviderAttribute
from ..core.attributes import attributes as _attributes
from .attributes import AttributeProvider
from .core import (
    EMPTY_DESCRIPTOR,
    CustomTypeDescriptor,
    EmptyTypeDescriptor,
    MergedTypeDescriptor,
    TypeDescriptionProvider,
)
from .delegating import DelegatingTypeDescriptionProvider
from .reflection import ReflectionTypeDescriptionProvider

T = TypeVar("T", bound=type)


def type_description_provider(provider_type: Type[TypeDescriptionProvider]) -> Callable[[T], T]:
    """Class decorator naming the provider that describes the class by default.

    The provider is created with no arguments the first time the class, or a
    class deriving from it, is looked up in a registry.
    """
    if not (isinstance(provider_type, type) and issubclass(provider_type, TypeDescriptionProvider)):
        raise TypeError(f"{provider_type!r} is not a TypeDescriptionProvider subclass")
    return _attributes(TypeDescriptionProviderAttribute(provider_type))


__all__ = [
    "AttributeProvider",
    "CustomTypeDescriptor",
    "DelegatingTypeDescriptionProvider",
    "EMPTY_DESCRIPTOR",
    "EmptyTypeDescriptor",
    "MergedTypeDescriptor",
    "ReflectionTypeDescriptionProvider",
    "TypeDescriptionProvider",
    "type_description_provider",
]
