"""Dynamic type metadata resolution.

Attributes, properties, events and converters of types and instances are
resolved through chains of pluggable providers, merged with what extenders
contribute, filtered by site services and cached per instance.
"""

from importlib.metadata import PackageNotFoundError, version

from .core import (
    Attribute,
    AttributeCollection,
    BrowsableAttribute,
    CategoryAttribute,
    Component,
    Container,
    DescriptionAttribute,
    EventDescriptor,
    EventDescriptorCollection,
    ExtenderProvider,
    PropertyDescriptor,
    PropertyDescriptorCollection,
    ProvidePropertyAttribute,
    RegistrySettings,
    Site,
    TypeConverter,
    TypeDescriptorError,
    TypeDescriptorFilterService,
    attributes,
    event,
)
from .providers import (
    CustomTypeDescriptor,
    TypeDescriptionProvider,
    type_description_provider,
)
from .registry import MetadataRegistry, RefreshEventArgs

try:
    __version__ = version("typedesc")
except PackageNotFoundError:
    # package is not installed
    pass

__all__ = [
    "Attribute",
    "AttributeCollection",
    "BrowsableAttribute",
    "CategoryAttribute",
    "Component",
    "Container",
    "CustomTypeDescriptor",
    "DescriptionAttribute",
    "EventDescriptor",
    "EventDescriptorCollection",
    "ExtenderProvider",
    "MetadataRegistry",
    "PropertyDescriptor",
    "PropertyDescriptorCollection",
    "ProvidePropertyAttribute",
    "RefreshEventArgs",
    "RegistrySettings",
    "Site",
    "TypeConverter",
    "TypeDescriptionProvider",
    "TypeDescriptorError",
    "TypeDescriptorFilterService",
    "attributes",
    "event",
    "type_description_provider",
]
