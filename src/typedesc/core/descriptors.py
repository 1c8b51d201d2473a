"""Member descriptors and their immutable collections.

Descriptors compare by identity. The metadata pipeline relies on this to
decide whether the collection a provider returned is the one it already
processed.
"""

from __future__ import annotations

import copy
from typing import (
    Any,
    Callable,
    ClassVar,
    Generic,
    Iterable,
    Iterator,
    List,
    Optional,
    Sequence,
    Tuple,
    Type,
    TypeVar,
    Union,
    overload,
)

from .attributes import (
    Attribute,
    AttributeCollection,
    BrowsableAttribute,
    CategoryAttribute,
    DescriptionAttribute,
    DesignOnlyAttribute,
    DisplayNameAttribute,
    ExtenderProvidedAttribute,
    ReadOnlyAttribute,
    TypeConverterAttribute,
)
from .converters import TypeConverter
from .exceptions import ArgumentNullError
from .weak import weak_handle

D = TypeVar("D", bound="MemberDescriptor")


class MemberDescriptor:
    """A named member of a component, carrying a set of attributes."""

    def __init__(self, name: str, attrs: Iterable[Attribute] = ()):
        if not name:
            raise ValueError("A member descriptor needs a non-empty name")
        self._name = name
        self._attributes = (
            attrs if isinstance(attrs, AttributeCollection) else AttributeCollection(attrs)
        )

    @property
    def name(self) -> str:
        return self._name

    @property
    def attributes(self) -> AttributeCollection:
        return self._attributes

    @property
    def category(self) -> str:
        return self._attributes[CategoryAttribute].category

    @property
    def description(self) -> str:
        return self._attributes[DescriptionAttribute].description

    @property
    def display_name(self) -> str:
        display = self._attributes.get(DisplayNameAttribute)
        if display is None or not display.display_name:
            return self._name
        return display.display_name

    @property
    def is_browsable(self) -> bool:
        return self._attributes[BrowsableAttribute].browsable

    @property
    def design_time_only(self) -> bool:
        return self._attributes[DesignOnlyAttribute].is_design_only

    @property
    def is_extender_provided(self) -> bool:
        return self._attributes.get(ExtenderProvidedAttribute) is not None

    def renamed(self: D, name: str) -> D:
        """Return a copy of this descriptor exposed under another name.

        The copy shares the attribute collection of the original.
        """
        clone = copy.copy(self)
        clone._name = name
        return clone

    def with_attributes(self: D, *attrs: Attribute, component_type: Optional[type] = None) -> D:
        """Return a copy of this descriptor with ``attrs`` merged into its attributes.

        The copy describes ``component_type`` instead when one is given.
        """
        clone = copy.copy(self)
        clone._attributes = AttributeCollection.from_existing(self._attributes, *attrs)
        if component_type is not None:
            clone._component_type = component_type
        return clone

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self._name!r}>"


class PropertyDescriptor(MemberDescriptor):
    """Describes a property of a component type."""

    def __init__(
        self,
        component_type: type,
        name: str,
        property_type: type = object,
        attrs: Iterable[Attribute] = (),
    ):
        super().__init__(name, attrs)
        self._component_type = component_type
        self._property_type = property_type

    @property
    def component_type(self) -> type:
        return self._component_type

    @property
    def property_type(self) -> type:
        return self._property_type

    @property
    def is_read_only(self) -> bool:
        return self._attributes[ReadOnlyAttribute].is_read_only

    @property
    def converter(self) -> TypeConverter:
        """Converter declared on the property, or a plain converter for its type."""
        declared = self._attributes.get(TypeConverterAttribute)
        if declared is not None and declared.converter_type is not None:
            return declared.converter_type(self._property_type)
        return TypeConverter(self._property_type)

    def get_value(self, component: Any) -> Any:
        raise NotImplementedError(f"Property '{self.name}' cannot be read")

    def set_value(self, component: Any, value: Any) -> None:
        raise AttributeError(f"Property '{self.name}' is read only")


class SimplePropertyDescriptor(PropertyDescriptor):
    """Property descriptor backed by plain getter and setter callables."""

    def __init__(
        self,
        component_type: type,
        name: str,
        property_type: type = object,
        attrs: Iterable[Attribute] = (),
        getter: Optional[Callable[[Any], Any]] = None,
        setter: Optional[Callable[[Any, Any], None]] = None,
    ):
        super().__init__(component_type, name, property_type, attrs)
        self._getter = getter
        self._setter = setter

    @property
    def is_read_only(self) -> bool:
        return self._setter is None or super().is_read_only

    def get_value(self, component: Any) -> Any:
        if self._getter is None:
            return getattr(component, self.name)
        return self._getter(component)

    def set_value(self, component: Any, value: Any) -> None:
        if self._setter is None:
            raise AttributeError(f"Property '{self.name}' is read only")
        self._setter(component, value)


class ReflectPropertyDescriptor(PropertyDescriptor):
    """Property descriptor backed by a Python ``property`` object."""

    def __init__(
        self,
        component_type: type,
        name: str,
        prop: property,
        property_type: type = object,
        attrs: Iterable[Attribute] = (),
    ):
        super().__init__(component_type, name, property_type, attrs)
        self._property = prop

    @property
    def is_read_only(self) -> bool:
        return self._property.fset is None or super().is_read_only

    def get_value(self, component: Any) -> Any:
        if self._property.fget is None:
            raise AttributeError(f"Property '{self.name}' has no getter")
        return self._property.fget(component)

    def set_value(self, component: Any, value: Any) -> None:
        if self._property.fset is None:
            raise AttributeError(f"Property '{self.name}' is read only")
        self._property.fset(component, value)


class ExtenderPropertyDescriptor(PropertyDescriptor):
    """Property contributed to a receiver object by an extender provider.

    Values are read through ``get_<name>(receiver)`` and written through
    ``set_<name>(receiver, value)`` on the extender.
    """

    def __init__(
        self,
        extender: Any,
        receiver_type: type,
        name: str,
        property_type: type = object,
        attrs: Iterable[Attribute] = (),
    ):
        tagged = AttributeCollection.from_existing(
            attrs, ExtenderProvidedAttribute(provider=extender, receiver_type=receiver_type)
        )
        super().__init__(receiver_type, name, property_type, tagged)
        self._extender = weak_handle(extender)

    @property
    def extender(self) -> Any:
        extender = self._extender()
        if extender is None:
            raise ReferenceError(f"The extender providing '{self.name}' was garbage collected")
        return extender

    @property
    def is_read_only(self) -> bool:
        setter = getattr(self.extender, f"set_{self._extended_name}", None)
        return setter is None or super().is_read_only

    @property
    def _extended_name(self) -> str:
        # Renaming on collision must not change which extender method is called.
        return self.__dict__.get("_original_name", self._name)

    def renamed(self, name: str) -> "ExtenderPropertyDescriptor":
        clone = super().renamed(name)
        clone.__dict__.setdefault("_original_name", self._name)
        return clone

    def get_value(self, component: Any) -> Any:
        return getattr(self.extender, f"get_{self._extended_name}")(component)

    def set_value(self, component: Any, value: Any) -> None:
        setter = getattr(self.extender, f"set_{self._extended_name}", None)
        if setter is None:
            raise AttributeError(f"Extended property '{self.name}' is read only")
        setter(component, value)


class EventHandlerList:
    """Handlers subscribed to one event of one object."""

    def __init__(self) -> None:
        self._handlers: List[Callable[..., Any]] = []

    def add(self, handler: Callable[..., Any]) -> None:
        self._handlers.append(handler)

    def remove(self, handler: Callable[..., Any]) -> None:
        if handler in self._handlers:
            self._handlers.remove(handler)

    def fire(self, *args: Any, **kwargs: Any) -> None:
        for handler in list(self._handlers):
            handler(*args, **kwargs)

    def __iter__(self) -> Iterator[Callable[..., Any]]:
        return iter(list(self._handlers))

    def __len__(self) -> int:
        return len(self._handlers)


class EventSlot:
    """Class level declaration of a component event.

    Accessing the slot on an instance returns that instance's handler list.
    """

    def __init__(self, event_type: Optional[type] = None, attrs: Iterable[Attribute] = ()):
        self.event_type = event_type
        self.attributes: Tuple[Attribute, ...] = tuple(attrs)
        self.name: Optional[str] = None

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    @overload
    def __get__(self, instance: None, owner: type) -> "EventSlot": ...

    @overload
    def __get__(self, instance: object, owner: type) -> EventHandlerList: ...

    def __get__(self, instance: Any, owner: type) -> Any:
        if instance is None:
            return self
        storage = f"_{self.name}_handlers"
        handlers = instance.__dict__.get(storage)
        if handlers is None:
            handlers = instance.__dict__.setdefault(storage, EventHandlerList())
        return handlers


def event(event_type: Optional[type] = None, *attrs: Attribute) -> EventSlot:
    """Declare a component event, optionally typed and carrying attributes."""
    return EventSlot(event_type, attrs)


class EventDescriptor(MemberDescriptor):
    """Describes an event of a component type."""

    def __init__(
        self,
        component_type: type,
        name: str,
        event_type: Optional[type] = None,
        attrs: Iterable[Attribute] = (),
    ):
        super().__init__(name, attrs)
        self._component_type = component_type
        self._event_type = event_type

    @property
    def component_type(self) -> type:
        return self._component_type

    @property
    def event_type(self) -> Optional[type]:
        return self._event_type

    def add_handler(self, component: Any, handler: Callable[..., Any]) -> None:
        getattr(component, self.name).add(handler)

    def remove_handler(self, component: Any, handler: Callable[..., Any]) -> None:
        getattr(component, self.name).remove(handler)


class ReflectEventDescriptor(EventDescriptor):
    """Event descriptor backed by an :class:`EventSlot`."""

    def __init__(self, component_type: type, slot: EventSlot, attrs: Iterable[Attribute] = ()):
        if slot.name is None:
            raise ValueError("Event slot was never bound to a class attribute")
        super().__init__(component_type, slot.name, slot.event_type, attrs)
        self._slot = slot

    def _handlers(self, component: Any) -> EventHandlerList:
        return self._slot.__get__(component, type(component))

    def add_handler(self, component: Any, handler: Callable[..., Any]) -> None:
        self._handlers(component).add(handler)

    def remove_handler(self, component: Any, handler: Callable[..., Any]) -> None:
        self._handlers(component).remove(handler)


class DescriptorCollection(Sequence[D], Generic[D]):
    """Immutable ordered collection of member descriptors."""

    element_type: ClassVar[Type[MemberDescriptor]] = MemberDescriptor

    def __init__(self, descriptors: Iterable[D] = ()):
        items = tuple(descriptors)
        for item in items:
            if not isinstance(item, self.element_type):
                raise TypeError(
                    f"{type(self).__name__} expects {self.element_type.__name__} "
                    f"elements, got {type(item).__name__}"
                )
        self._items: Tuple[D, ...] = items

    def find(self, name: str, ignore_case: bool = False) -> Optional[D]:
        """Return the descriptor with the given name, or None."""
        if ignore_case:
            lowered = name.lower()
            for item in self._items:
                if item.name.lower() == lowered:
                    return item
            return None
        for item in self._items:
            if item.name == name:
                return item
        return None

    def names(self) -> List[str]:
        return [item.name for item in self._items]

    def sort(self, names: Optional[Sequence[str]] = None):
        """Return a copy sorted by name, with ``names`` (if any) placed first."""
        leading: List[D] = []
        if names:
            for name in names:
                found = self.find(name)
                if found is not None and found not in leading:
                    leading.append(found)
        rest = sorted((item for item in self._items if item not in leading), key=lambda d: d.name)
        return type(self)(leading + rest)

    @overload
    def __getitem__(self, index: int) -> D: ...

    @overload
    def __getitem__(self, index: slice) -> Sequence[D]: ...

    @overload
    def __getitem__(self, index: str) -> Optional[D]: ...

    def __getitem__(self, index: Union[int, slice, str]) -> Any:
        if isinstance(index, str):
            return self.find(index)
        return self._items[index]

    def __iter__(self) -> Iterator[D]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, DescriptorCollection):
            return len(self._items) == len(other._items) and all(
                mine is theirs for mine, theirs in zip(self._items, other._items)
            )
        return NotImplemented

    def __hash__(self) -> int:
        return hash(tuple(id(item) for item in self._items))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.names()!r})"


class PropertyDescriptorCollection(DescriptorCollection[PropertyDescriptor]):
    """Immutable collection of property descriptors."""

    element_type = PropertyDescriptor


class EventDescriptorCollection(DescriptorCollection[EventDescriptor]):
    """Immutable collection of event descriptors."""

    element_type = EventDescriptor


def sort_descriptor_array(infos: List[MemberDescriptor]) -> None:
    """Sort a list of member descriptors in place by name."""
    if infos is None:
        raise ArgumentNullError("infos")
    infos.sort(key=lambda info: info.name)
