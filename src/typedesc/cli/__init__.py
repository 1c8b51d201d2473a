"""
Command line interface to inspect the metadata resolved for a class.
"""

import importlib
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Type

import typer
import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from typedesc.core.attributes import (
    Attribute,
    BrowsableAttribute,
    CategoryAttribute,
    DefaultEventAttribute,
    DefaultPropertyAttribute,
    DescriptionAttribute,
    DesignOnlyAttribute,
    DisplayNameAttribute,
    ReadOnlyAttribute,
)
from typedesc.core.settings import RegistrySettings
from typedesc.registry import MetadataKind, MetadataRegistry

logging.basicConfig(
    level=logging.WARNING, format="%(asctime)s | %(name)s | %(levelname)s | %(message)s"
)

app = typer.Typer(help="Inspect type metadata resolved through provider chains.")
console = Console()

# Attributes usable in --filter options and overlay files, by short name
KNOWN_ATTRIBUTES: Dict[str, Type[Attribute]] = {
    cls.__name__.removesuffix("Attribute").lower(): cls
    for cls in (
        BrowsableAttribute,
        CategoryAttribute,
        DefaultEventAttribute,
        DefaultPropertyAttribute,
        DescriptionAttribute,
        DesignOnlyAttribute,
        DisplayNameAttribute,
        ReadOnlyAttribute,
    )
}


def fail(message: str) -> typer.Exit:
    console.print(f"[red]:heavy_multiplication_x:[/red] [bold]CLI:[/bold] {message}")
    return typer.Exit(code=1)


def import_target(target: str) -> type:
    """Import a class given as ``package.module:Class``."""
    module_name, _, qualname = target.partition(":")
    if not module_name or not qualname:
        raise fail(f"Target '{target}' must look like 'package.module:Class'")
    try:
        obj: Any = importlib.import_module(module_name)
    except ImportError as ex:
        raise fail(f"Cannot import module '{module_name}':\n{ex}")
    for part in qualname.split("."):
        obj = getattr(obj, part, None)
        if obj is None:
            raise fail(f"Module '{module_name}' has no attribute '{qualname}'")
    if not isinstance(obj, type):
        raise fail(f"'{target}' is not a class")
    return obj


def make_attribute(name: str, value: Any) -> Attribute:
    """Build a stock attribute from its short name and value, e.g. ``Category``."""
    attr_type = KNOWN_ATTRIBUTES.get(name.strip().lower())
    if attr_type is None:
        raise fail(f"Unknown attribute '{name}'. Available: {sorted(KNOWN_ATTRIBUTES)}")
    field = next(iter(attr_type.model_fields))
    try:
        return attr_type(**{field: value})
    except ValidationError as ex:
        raise fail(f"Invalid value for attribute '{name}':\n{ex}")


def parse_filters(filters: Optional[List[str]]) -> List[Attribute]:
    attrs = []
    for item in filters or []:
        name, sep, value = item.partition("=")
        if not sep:
            raise fail(f"Filter '{item}' must look like 'Attribute=value'")
        attrs.append(make_attribute(name, value))
    return attrs


def load_overlay(path: Path) -> List[Attribute]:
    """Read a YAML mapping of attribute short names to values."""
    try:
        with open(path, "r") as f:
            content = yaml.safe_load(f)
    except FileNotFoundError as ex:
        raise fail(f"Failed to load the overlay:\n{ex}")
    except yaml.YAMLError as ex:
        raise fail(f"Failed to parse the overlay:\n{ex}")
    if content is None:
        return []
    if not isinstance(content, dict):
        raise fail(f"Overlay must contain a mapping of attribute names to values: {path}")
    return [make_attribute(str(name), value) for name, value in content.items()]


def build_registry(discover: Optional[bool] = None) -> MetadataRegistry:
    settings = RegistrySettings.from_env()
    if discover is not None:
        settings = settings.model_copy(update={"discover_providers": discover})
    return MetadataRegistry(settings)


@app.command("describe")
def describe(
    target: str = typer.Argument(..., help="Class to describe, as 'package.module:Class'"),
    kind: MetadataKind = typer.Option(MetadataKind.PROPERTIES, help="Kind of metadata to show"),
    filter: Optional[List[str]] = typer.Option(
        None, "--filter", help="Only show members satisfying 'Attribute=value'"
    ),
    overlay: Optional[Path] = typer.Option(
        None, help="YAML file of class-level attributes to overlay first"
    ),
):
    """
    Show the attributes, properties or events resolved for a class.
    """
    registry = build_registry()
    component_type = import_target(target)
    attrs = parse_filters(filter)

    if overlay is not None:
        overlay_attrs = load_overlay(overlay)
        if overlay_attrs:
            registry.add_attributes(component_type, *overlay_attrs)

    if kind is MetadataKind.ATTRIBUTES:
        if attrs:
            raise fail("Attributes cannot be filtered by attributes")
        table = Table(title=f"Attributes of {target}")
        table.add_column("Attribute", style="cyan")
        table.add_column("Value")
        for attr in registry.get_attributes(component_type):
            values = ", ".join(f"{k}={v!r}" for k, v in attr.model_dump().items())
            table.add_row(type(attr).__name__, values)
    elif kind is MetadataKind.PROPERTIES:
        table = Table(title=f"Properties of {target}")
        table.add_column("Name", style="cyan")
        table.add_column("Type")
        table.add_column("Category")
        table.add_column("Read only")
        table.add_column("Description")
        for prop in registry.get_properties(component_type, attrs or None):
            table.add_row(
                prop.name,
                getattr(prop.property_type, "__name__", str(prop.property_type)),
                prop.category,
                "yes" if prop.is_read_only else "no",
                prop.description,
            )
    else:
        table = Table(title=f"Events of {target}")
        table.add_column("Name", style="cyan")
        table.add_column("Event type")
        table.add_column("Category")
        table.add_column("Description")
        for evt in registry.get_events(component_type, attrs or None):
            event_type = evt.event_type.__name__ if evt.event_type is not None else "-"
            table.add_row(evt.name, event_type, evt.category, evt.description)

    console.print(table)


@app.command("providers")
def providers(
    target: Optional[str] = typer.Argument(
        None, help="Class whose provider chain to show, as 'package.module:Class'"
    ),
):
    """
    List the providers published through entry points and the chain of a class.
    """
    registry = build_registry(discover=True)

    discovered = Table(title="Discovered providers")
    discovered.add_column("Entry point", style="cyan")
    discovered.add_column("Provider")
    discovered.add_column("Describes")
    for name, provider_class in registry.list_discovered().items():
        describes = getattr(provider_class, "describes", None)
        discovered.add_row(
            name,
            f"{provider_class.__module__}.{provider_class.__qualname__}",
            getattr(describes, "__qualname__", "-"),
        )
    console.print(discovered)

    if target is None:
        return
    component_type = import_target(target)
    chain = Table(title=f"Provider chain of {target}")
    chain.add_column("#", justify="right")
    chain.add_column("Provider")
    for position, provider in enumerate(registry.chain_of(component_type)):
        chain.add_row(str(position), repr(provider))
    console.print(chain)


if __name__ == "__main__":
    app()
