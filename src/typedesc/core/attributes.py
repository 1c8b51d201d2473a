"""Metadata attributes attached to classes, properties and events.

Attributes are frozen pydantic models: two attributes are equal when they are
of the same class and carry the same values, which is what the attribute
filter stage of the metadata pipeline relies on.
"""

from __future__ import annotations

from typing import (
    Any,
    Callable,
    ClassVar,
    Iterable,
    Iterator,
    Optional,
    Sequence,
    Tuple,
    Type,
    TypeVar,
    Union,
    overload,
)

from pydantic import BaseModel, ConfigDict, PrivateAttr, ValidationError

from .weak import weak_handle

ATTRIBUTES_KEY = "__typedesc_attributes__"

A = TypeVar("A", bound="Attribute")
T = TypeVar("T")


class Attribute(BaseModel):
    """Base class for all metadata attributes."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @property
    def type_id(self) -> type:
        """Identity used to decide whether two attributes replace each other."""
        return type(self)

    @classmethod
    def default(cls: Type[A]) -> Optional[A]:
        """Return the default instance of this attribute class, if it has one."""
        try:
            return cls()
        except (TypeError, ValidationError):
            # Attributes with required values have no default.
            return None

    def is_default_attribute(self) -> bool:
        """Return True if this attribute carries its class default value."""
        default = type(self).default()
        return default is not None and self == default

    def match(self, other: Any) -> bool:
        """Return True if ``other`` satisfies this attribute."""
        return self == other


class BrowsableAttribute(Attribute):
    """Whether a member should be shown by browsing tools."""

    browsable: bool = True

    def __init__(self, browsable: bool = True, **data: Any):
        super().__init__(browsable=browsable, **data)


class CategoryAttribute(Attribute):
    """Category under which a member is grouped."""

    category: str = "Misc"

    def __init__(self, category: str = "Misc", **data: Any):
        super().__init__(category=category, **data)


class DescriptionAttribute(Attribute):
    """Human readable description of a member."""

    description: str = ""

    def __init__(self, description: str = "", **data: Any):
        super().__init__(description=description, **data)


class DisplayNameAttribute(Attribute):
    """Display name of a member, when different from its name."""

    display_name: str = ""

    def __init__(self, display_name: str = "", **data: Any):
        super().__init__(display_name=display_name, **data)


class ReadOnlyAttribute(Attribute):
    """Marks a member as read only."""

    is_read_only: bool = False

    def __init__(self, is_read_only: bool = False, **data: Any):
        super().__init__(is_read_only=is_read_only, **data)


class DesignOnlyAttribute(Attribute):
    """Marks a member that is only meaningful at design time."""

    is_design_only: bool = False

    def __init__(self, is_design_only: bool = False, **data: Any):
        super().__init__(is_design_only=is_design_only, **data)


class DefaultPropertyAttribute(Attribute):
    """Names the default property of a class."""

    name: Optional[str] = None

    def __init__(self, name: Optional[str] = None, **data: Any):
        super().__init__(name=name, **data)


class DefaultEventAttribute(Attribute):
    """Names the default event of a class."""

    name: Optional[str] = None

    def __init__(self, name: Optional[str] = None, **data: Any):
        super().__init__(name=name, **data)


class TypeConverterAttribute(Attribute):
    """Names the converter class used for a type or a property."""

    converter_type: Optional[Type[Any]] = None

    def __init__(self, converter_type: Optional[Type[Any]] = None, **data: Any):
        super().__init__(converter_type=converter_type, **data)


class EditorAttribute(Attribute):
    """Names the editor class used to edit a type, for one editor base type."""

    editor_type: Type[Any]
    editor_base_type: Type[Any] = object

    def __init__(self, editor_type: Type[Any], editor_base_type: Type[Any] = object, **data: Any):
        super().__init__(editor_type=editor_type, editor_base_type=editor_base_type, **data)

    @property
    def type_id(self) -> Any:
        # One editor per editor base type.
        return (type(self), self.editor_base_type)


class DesignerAttribute(Attribute):
    """Names the designer class of a component, for one designer base type."""

    designer_type: Type[Any]
    designer_base_type: Type[Any] = object

    def __init__(self, designer_type: Type[Any], designer_base_type: Type[Any] = object, **data: Any):
        super().__init__(designer_type=designer_type, designer_base_type=designer_base_type, **data)

    @property
    def type_id(self) -> Any:
        return (type(self), self.designer_base_type)


def find_editor_type(attrs: Iterable[Attribute], editor_base_type: type) -> Optional[type]:
    """Return the editor class ``attrs`` declare for ``editor_base_type``, or None."""
    for attr in attrs:
        if isinstance(attr, EditorAttribute) and attr.editor_base_type is editor_base_type:
            return attr.editor_type
    return None


class ExtenderProvidedAttribute(Attribute):
    """Tags a member contributed to an instance by an extender provider.

    The extender is held weakly: ``provider`` is None once it was collected.
    """

    receiver_type: Optional[Type[Any]] = None
    _provider: Optional[Callable[[], Any]] = PrivateAttr(default=None)

    def __init__(self, provider: Any = None, receiver_type: Optional[Type[Any]] = None, **data: Any):
        super().__init__(receiver_type=receiver_type, **data)
        if provider is not None:
            self._provider = weak_handle(provider)

    @property
    def provider(self) -> Any:
        return self._provider() if self._provider is not None else None


class ProvidePropertyAttribute(Attribute):
    """Declares, on an extender class, a property it contributes to others."""

    property_name: str
    receiver_type: Type[Any] = object
    property_type: Type[Any] = object

    def __init__(
        self,
        property_name: str,
        receiver_type: Type[Any] = object,
        property_type: Type[Any] = object,
        **data: Any,
    ):
        super().__init__(
            property_name=property_name,
            receiver_type=receiver_type,
            property_type=property_type,
            **data,
        )

    @property
    def type_id(self) -> Any:
        # Several properties may be provided by the same extender class.
        return (type(self), self.property_name)


class TypeDescriptionProviderAttribute(Attribute):
    """Names the provider that should describe a class by default."""

    provider_type: Type[Any]

    def __init__(self, provider_type: Type[Any], **data: Any):
        super().__init__(provider_type=provider_type, **data)


def attributes(*attrs: Attribute) -> Callable[[T], T]:
    """Decorate a class, a property or a getter with metadata attributes.

    Attributes applied to a class are not inherited through ``getattr``: the
    reflection provider walks the MRO itself so that derived classes win.
    """
    for attr in attrs:
        if not isinstance(attr, Attribute):
            raise TypeError(f"{attr!r} is not an Attribute")

    def decorator(obj: T) -> T:
        target: Any = obj.fget if isinstance(obj, property) else obj
        if target is None:
            raise TypeError("Cannot attach attributes to a property without a getter")
        existing = declared_attributes(target)
        setattr(target, ATTRIBUTES_KEY, tuple(existing) + tuple(attrs))
        return obj

    return decorator


def declared_attributes(obj: Any) -> Tuple[Attribute, ...]:
    """Return the attributes declared directly on ``obj``."""
    if isinstance(obj, type):
        return tuple(obj.__dict__.get(ATTRIBUTES_KEY, ()))
    if isinstance(obj, property):
        obj = obj.fget
    return tuple(getattr(obj, ATTRIBUTES_KEY, ()))


class AttributeCollection(Sequence[Attribute]):
    """Immutable ordered collection of attributes."""

    EMPTY: ClassVar["AttributeCollection"]

    def __init__(self, attrs: Iterable[Attribute] = ()):
        items = tuple(attrs)
        for attr in items:
            if not isinstance(attr, Attribute):
                raise TypeError(f"{attr!r} is not an Attribute")
        self._attributes: Tuple[Attribute, ...] = items

    @classmethod
    def from_existing(
        cls, existing: Iterable[Attribute], *new_attributes: Attribute
    ) -> "AttributeCollection":
        """Build a collection from ``existing``, replacing entries by ``type_id``."""
        merged = list(existing)
        for new_attr in new_attributes:
            for idx, current in enumerate(merged):
                if current.type_id == new_attr.type_id:
                    merged[idx] = new_attr
                    break
            else:
                merged.append(new_attr)
        return cls(merged)

    def get(self, attr_type: Type[A]) -> Optional[A]:
        """Return the attribute of the given class, or None if absent."""
        for attr in self._attributes:
            if type(attr) is attr_type:
                return attr  # type: ignore[return-value]
        for attr in self._attributes:
            if isinstance(attr, attr_type):
                return attr
        return None

    def contains(self, attribute: Attribute) -> bool:
        """Return True if an equal attribute is in the collection."""
        found = self.get(type(attribute))
        return found is not None and found == attribute

    def matches(self, attribute: Attribute) -> bool:
        """Return True if any attribute in the collection matches ``attribute``."""
        return any(attr.match(attribute) for attr in self._attributes)

    @overload
    def __getitem__(self, index: int) -> Attribute: ...

    @overload
    def __getitem__(self, index: slice) -> Sequence[Attribute]: ...

    @overload
    def __getitem__(self, index: type) -> Optional[Attribute]: ...

    def __getitem__(self, index: Union[int, slice, type]) -> Any:
        if isinstance(index, type):
            found = self.get(index)
            return found if found is not None else index.default()
        return self._attributes[index]

    def __iter__(self) -> Iterator[Attribute]:
        return iter(self._attributes)

    def __len__(self) -> int:
        return len(self._attributes)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, AttributeCollection):
            return self._attributes == other._attributes
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._attributes)

    def __repr__(self) -> str:
        return f"AttributeCollection({list(self._attributes)!r})"


AttributeCollection.EMPTY = AttributeCollection()
