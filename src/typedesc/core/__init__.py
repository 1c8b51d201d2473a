"""Value model of the type description system.

Attributes, member descriptors, converters, the component model and the
identity keyed weak map shared by the provider table and the association table.
"""

from .attributes import (
    Attribute,
    AttributeCollection,
    BrowsableAttribute,
    CategoryAttribute,
    DefaultEventAttribute,
    DefaultPropertyAttribute,
    DescriptionAttribute,
    DesignerAttribute,
    DesignOnlyAttribute,
    DisplayNameAttribute,
    EditorAttribute,
    ExtenderProvidedAttribute,
    ProvidePropertyAttribute,
    ReadOnlyAttribute,
    TypeConverterAttribute,
    TypeDescriptionProviderAttribute,
    attributes,
    declared_attributes,
    find_editor_type,
)
from .components import (
    Component,
    Container,
    DesignerHost,
    ExtenderListService,
    ExtenderProvider,
    Site,
    TypeDescriptorFilterService,
)
from .converters import StandardValuesCollection, TypeConverter
from .descriptors import (
    EventDescriptor,
    EventDescriptorCollection,
    EventHandlerList,
    EventSlot,
    ExtenderPropertyDescriptor,
    MemberDescriptor,
    PropertyDescriptor,
    PropertyDescriptorCollection,
    ReflectEventDescriptor,
    ReflectPropertyDescriptor,
    SimplePropertyDescriptor,
    event,
    sort_descriptor_array,
)
from .exceptions import (
    ArgumentMismatchError,
    ArgumentNullError,
    ConversionNotSupportedError,
    DuplicateAssociationError,
    InvalidAssociationError,
    ProviderContractError,
    TypeDescriptorError,
)
from .settings import RegistrySettings
from .weak import IdentityWeakMap, is_weak_referenceable

__all__ = [
    # Attributes
    "Attribute",
    "AttributeCollection",
    "BrowsableAttribute",
    "CategoryAttribute",
    "DefaultEventAttribute",
    "DefaultPropertyAttribute",
    "DescriptionAttribute",
    "DesignerAttribute",
    "DesignOnlyAttribute",
    "DisplayNameAttribute",
    "EditorAttribute",
    "ExtenderProvidedAttribute",
    "ProvidePropertyAttribute",
    "ReadOnlyAttribute",
    "TypeConverterAttribute",
    "TypeDescriptionProviderAttribute",
    "attributes",
    "declared_attributes",
    "find_editor_type",
    # Component model
    "Component",
    "Container",
    "DesignerHost",
    "ExtenderListService",
    "ExtenderProvider",
    "Site",
    "TypeDescriptorFilterService",
    # Converters
    "StandardValuesCollection",
    "TypeConverter",
    # Descriptors
    "EventDescriptor",
    "EventDescriptorCollection",
    "EventHandlerList",
    "EventSlot",
    "ExtenderPropertyDescriptor",
    "MemberDescriptor",
    "PropertyDescriptor",
    "PropertyDescriptorCollection",
    "ReflectEventDescriptor",
    "ReflectPropertyDescriptor",
    "SimplePropertyDescriptor",
    "event",
    "sort_descriptor_array",
    # Errors
    "ArgumentMismatchError",
    "ArgumentNullError",
    "ConversionNotSupportedError",
    "DuplicateAssociationError",
    "InvalidAssociationError",
    "ProviderContractError",
    "TypeDescriptorError",
    # Configuration
    "RegistrySettings",
    # Weak references
    "IdentityWeakMap",
    "is_weak_referenceable",
]
