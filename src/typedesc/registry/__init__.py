"""Provider registry, metadata pipeline, associations and refresh."""

from .associations import AssociationTable
from .chain import ChainExtendedTypeDescriptor, ChainNode, ChainTypeDescriptor
from .core import MetadataRegistry, RefreshEventArgs, RefreshHandler
from .pipeline import (
    MetadataKind,
    MetadataPipeline,
    PipelineStage,
    filter_members,
    should_hide_member,
)
from .table import InterfaceMarker, ProviderTable, is_protocol, lineage

__all__ = [
    "AssociationTable",
    "ChainExtendedTypeDescriptor",
    "ChainNode",
    "ChainTypeDescriptor",
    "InterfaceMarker",
    "MetadataKind",
    "MetadataPipeline",
    "MetadataRegistry",
    "PipelineStage",
    "ProviderTable",
    "RefreshEventArgs",
    "RefreshHandler",
    "filter_members",
    "is_protocol",
    "lineage",
    "should_hide_member",
]
