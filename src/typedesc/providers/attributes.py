"""Provider overlaying class-level attributes on an existing provider."""

from __future__ import annotations

from typing import Any, Iterable, Optional, Tuple

from ..core.attributes import Attribute, AttributeCollection, find_editor_type
from .core import CustomTypeDescriptor, TypeDescriptionProvider


class _AttributeTypeDescriptor(CustomTypeDescriptor):
    def __init__(self, attrs: Tuple[Attribute, ...], parent: CustomTypeDescriptor):
        super().__init__(parent)
        self._attrs = attrs

    def get_attributes(self) -> AttributeCollection:
        return AttributeCollection.from_existing(super().get_attributes(), *self._attrs)

    def get_editor(self, editor_base_type: type) -> Any:
        editor_type = find_editor_type(self._attrs, editor_base_type)
        if editor_type is not None:
            return editor_type()
        return super().get_editor(editor_base_type)


class AttributeProvider(TypeDescriptionProvider):
    """Adds ``attrs`` to the class-level attributes ``existing`` reports.

    An added attribute replaces an existing one with the same ``type_id``.
    """

    def __init__(self, existing: TypeDescriptionProvider, attrs: Iterable[Attribute]):
        super().__init__(existing)
        self.attributes: Tuple[Attribute, ...] = tuple(attrs)

    def get_type_descriptor(self, object_type: Optional[type] = None, instance: Any = None) -> CustomTypeDescriptor:
        return _AttributeTypeDescriptor(self.attributes, super().get_type_descriptor(object_type, instance))

    def __repr__(self) -> str:
        names = ", ".join(type(attr).__name__ for attr in self.attributes)
        return f"<AttributeProvider [{names}]>"
