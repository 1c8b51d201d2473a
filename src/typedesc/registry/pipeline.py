"""Metadata pipeline run for instance queries.

For one instance and one kind of metadata the pipeline goes through four
stages, each memoized in the per-instance cache dictionary:

1. initialize: compare the provider's answer with the last baseline and drop
   every later stage if it changed;
2. merge: append what extenders contribute, renaming colliding names;
3. filter: let the site's filter service edit a name-keyed table;
4. attribute filter: hide members that do not satisfy the caller's
   attributes.

Immutable collections flow between stages when nothing changed. A stage that
had to compute a new result hands a ``list`` to the next one, which then
knows its own cached result cannot be reused.
"""

from __future__ import annotations

import itertools
import logging
from enum import StrEnum
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from ..core.attributes import Attribute, AttributeCollection, ExtenderProvidedAttribute
from ..core.components import TypeDescriptorFilterService
from ..core.descriptors import (
    EventDescriptorCollection,
    MemberDescriptor,
    PropertyDescriptorCollection,
)
from ..core.weak import weak_handle

logger = logging.getLogger(__name__)

Members = Union[AttributeCollection, PropertyDescriptorCollection, EventDescriptorCollection, List[Any]]


class MetadataKind(StrEnum):
    ATTRIBUTES = "attributes"
    PROPERTIES = "properties"
    EVENTS = "events"


class PipelineStage(StrEnum):
    INITIALIZE = "initialize"
    MERGE = "merge"
    FILTER = "filter"
    ATTRIBUTE_FILTER = "attribute_filter"


_COLLECTIONS = {
    MetadataKind.ATTRIBUTES: AttributeCollection,
    MetadataKind.PROPERTIES: PropertyDescriptorCollection,
    MetadataKind.EVENTS: EventDescriptorCollection,
}


def freeze(kind: MetadataKind, members: Iterable[Any]):
    """Return ``members`` as the immutable collection type of ``kind``."""
    collection_type = _COLLECTIONS[kind]
    if isinstance(members, collection_type):
        return members
    return collection_type(members)


def same_elements(first: Sequence[Any], second: Sequence[Any]) -> bool:
    """Return True if both sequences hold the very same objects in the same order."""
    if len(first) != len(second):
        return False
    return all(a is b for a, b in zip(first, second))


def should_hide_member(member: Optional[MemberDescriptor], attribute: Optional[Attribute]) -> bool:
    """Return True if ``member`` does not satisfy ``attribute``.

    A member satisfies an attribute when it carries a matching attribute of
    the same class, or when it carries none of that class and ``attribute``
    is the default value of its class.
    """
    if member is None or attribute is None:
        return True
    carried = member.attributes.get(type(attribute))
    if carried is None:
        return not attribute.is_default_attribute()
    return not attribute.match(carried)


def filter_members(members: Sequence[MemberDescriptor], attrs: Sequence[Attribute]) -> Optional[List[MemberDescriptor]]:
    """Return the members not hidden by any of ``attrs``, or None if none is hidden."""
    kept: Optional[List[MemberDescriptor]] = None
    for idx, member in enumerate(members):
        hidden = any(should_hide_member(member, attr) for attr in attrs)
        if hidden:
            if kept is None:
                kept = list(members[:idx])
        elif kept is not None:
            kept.append(member)
    return kept


class _MergeCacheItem:
    def __init__(self, inputs: Tuple[Any, ...], merged):
        self.inputs = inputs
        self.merged = merged


class _FilterCacheItem:
    def __init__(self, inputs: Sequence[Any], service: TypeDescriptorFilterService, filtered):
        self.inputs = tuple(inputs)
        self._service = weak_handle(service)
        self.filtered = filtered

    def is_valid(self, inputs: Sequence[Any], service: TypeDescriptorFilterService) -> bool:
        return self._service() is service and same_elements(self.inputs, inputs)


class _AttributeFilterCacheItem:
    def __init__(self, inputs: Sequence[Any], attrs: Tuple[Attribute, ...], filtered):
        self.inputs = tuple(inputs)
        self.attrs = attrs
        self.filtered = filtered

    def is_valid(self, inputs: Sequence[Any], attrs: Sequence[Attribute]) -> bool:
        if len(self.attrs) != len(attrs) or not same_elements(self.inputs, inputs):
            return False
        return all(mine == theirs for mine, theirs in zip(self.attrs, attrs))


class MetadataPipeline:
    """Runs the pipeline stages against per-instance cache dictionaries.

    Parameters
    ----------
    trace : bool, optional
        Log cache hits and misses at DEBUG level, by default False.
    """

    def __init__(self, trace: bool = False):
        self._trace = trace
        self._collision_index = itertools.count(1)

    def _log(self, message: str, instance: Any) -> None:
        if self._trace:
            logger.debug(f"Pipeline : {message} for {type(instance).__name__}")

    @staticmethod
    def clear(cache: Optional[dict], kinds: Iterable[MetadataKind] = tuple(MetadataKind)) -> None:
        """Drop the merge, filter and attribute filter results of ``kinds``."""
        if cache is None:
            return
        for kind in kinds:
            for stage in (PipelineStage.MERGE, PipelineStage.FILTER, PipelineStage.ATTRIBUTE_FILTER):
                cache.pop((kind, stage), None)

    def collision_suffix(self, member: MemberDescriptor) -> Optional[str]:
        """Return ``_<name>`` for an extender-provided member, None otherwise.

        The name is the extender's site name, or a fresh number when the
        extender is not sited under a name.
        """
        provided = member.attributes.get(ExtenderProvidedAttribute)
        if provided is None or provided.provider is None:
            return None
        site = getattr(provided.provider, "site", None)
        name = getattr(site, "name", None)
        if not name:
            name = str(next(self._collision_index))
        return f"_{name}"

    def name_table(self, members: Iterable[MemberDescriptor]) -> Dict[str, MemberDescriptor]:
        """Key ``members`` by name, renaming extender members whose names collide."""
        table: Dict[str, MemberDescriptor] = {}
        for member in members:
            name = member.name
            if name not in table:
                table[name] = member
                continue
            suffix = self.collision_suffix(member)
            if suffix is None:
                logger.warning(
                    f"Dropping member '{name}' of {type(member).__name__}: the name is already "
                    "taken and the member was not contributed by an extender"
                )
                continue
            new_name = self._free_name(table, name, suffix)
            table[new_name] = member.renamed(new_name)
            original = table[name]
            suffix = self.collision_suffix(original)
            if suffix is not None:
                del table[name]
                new_name = self._free_name(table, name, suffix)
                table[new_name] = original.renamed(new_name)
        return table

    def _free_name(self, table: Dict[str, MemberDescriptor], name: str, suffix: str) -> str:
        # The suffixed name may already belong to another member.
        candidate = name + suffix
        while candidate in table:
            candidate = f"{name}_{next(self._collision_index)}"
        return candidate

    def initialize(self, kind: MetadataKind, members: Members, cache: Optional[dict]) -> Members:
        """Record ``members`` as the baseline, dropping later stages if it changed."""
        if cache is None:
            return members
        key = (kind, PipelineStage.INITIALIZE)
        baseline = cache.get(key)
        if baseline is not None and same_elements(baseline, members):
            return baseline
        if self._trace and baseline is not None:
            logger.debug(f"Pipeline : {kind} baseline changed, clearing cached stages")
        self.clear(cache, (kind,))
        cache[key] = members
        return members

    def merge(
        self,
        kind: MetadataKind,
        primary: Members,
        secondary: Optional[Members],
        instance: Any,
        cache: Optional[dict],
    ) -> Members:
        """Append extender-provided ``secondary`` members to ``primary``."""
        if not secondary:
            return primary
        inputs = tuple(primary) + tuple(secondary)
        key = (kind, PipelineStage.MERGE)
        if cache is not None:
            item = cache.get(key)
            if item is not None and same_elements(item.inputs, inputs):
                self._log("Merge cache hit", instance)
                return item.merged

        if kind is MetadataKind.ATTRIBUTES:
            merged = list(inputs)
        else:
            merged = list(merge_members(self, primary, secondary).values())

        if cache is not None:
            self._log("Merge results being cached", instance)
            cache[key] = _MergeCacheItem(inputs, freeze(kind, merged))
            cache.pop((kind, PipelineStage.FILTER), None)
            cache.pop((kind, PipelineStage.ATTRIBUTE_FILTER), None)
        return merged

    def filter(
        self,
        kind: MetadataKind,
        members: Members,
        instance: Any,
        cache: Optional[dict],
        service: Optional[TypeDescriptorFilterService],
    ) -> Members:
        """Let the filter service of the instance's site edit ``members``."""
        if service is None:
            return members
        key = (kind, PipelineStage.FILTER)
        changed_upstream = isinstance(members, list)
        if cache is not None and not changed_upstream:
            item = cache.get(key)
            if item is not None and item.is_valid(members, service):
                self._log("Filter cache hit", instance)
                return item.filtered

        table: Dict[Any, Any]
        if kind is MetadataKind.ATTRIBUTES:
            table = {}
            for attr in members:
                table[attr.type_id] = attr
            cacheable = service.filter_attributes(instance, table)
        else:
            table = self.name_table(members)
            if kind is MetadataKind.PROPERTIES:
                cacheable = service.filter_properties(instance, table)
            else:
                cacheable = service.filter_events(instance, table)

        filtered = list(table.values())
        if cacheable and cache is not None:
            self._log("Filter results being cached", instance)
            cache[key] = _FilterCacheItem(members, service, freeze(kind, filtered))
            cache.pop((kind, PipelineStage.ATTRIBUTE_FILTER), None)
        return filtered

    def attribute_filter(
        self,
        kind: MetadataKind,
        members: Members,
        attrs: Optional[Sequence[Attribute]],
        instance: Any,
        cache: Optional[dict],
    ) -> Members:
        """Hide the members that do not satisfy every attribute of ``attrs``."""
        if kind is MetadataKind.ATTRIBUTES:
            raise ValueError("Attributes cannot be filtered by attributes")
        if not attrs:
            return members
        key = (kind, PipelineStage.ATTRIBUTE_FILTER)
        if cache is not None and not isinstance(members, list):
            item = cache.get(key)
            if item is not None and item.is_valid(members, attrs):
                self._log("Attribute filter cache hit", instance)
                return item.filtered

        kept = filter_members(members, attrs)
        result = list(members) if kept is None else kept
        if cache is not None:
            self._log("Attribute filter results being cached", instance)
            cache[key] = _AttributeFilterCacheItem(members, tuple(attrs), freeze(kind, result))
        return result

    def run(
        self,
        kind: MetadataKind,
        primary: Members,
        extended: Callable[[], Optional[Members]],
        instance: Any,
        cache: Optional[dict],
        service: Optional[TypeDescriptorFilterService],
        attrs: Optional[Sequence[Attribute]] = None,
    ):
        """Run every stage and return the immutable result collection."""
        members = self.initialize(kind, primary, cache)
        members = self.merge(kind, members, extended(), instance, cache)
        members = self.filter(kind, members, instance, cache, service)
        if kind is not MetadataKind.ATTRIBUTES:
            members = self.attribute_filter(kind, members, attrs, instance, cache)
        if isinstance(members, list) and self._trace:
            self._log(f"Allocated new {kind} collection", instance)
        return freeze(kind, members)


def merge_members(
    pipeline: MetadataPipeline, primary: Iterable[MemberDescriptor], secondary: Iterable[MemberDescriptor]
) -> Dict[str, MemberDescriptor]:
    """Concatenate ``primary`` and ``secondary`` into a name-keyed table."""
    return pipeline.name_table(itertools.chain(primary, secondary))
