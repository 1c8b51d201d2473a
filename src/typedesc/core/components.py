"""Component model: components, sites, containers and the services they expose.

A component placed in a :class:`Container` receives a :class:`Site`. The
metadata pipeline looks up filter services, extender lists and designer hosts
through ``component.site.get_service``.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

logger = logging.getLogger(__name__)


class Component:
    """Object that can be sited in a container."""

    def __init__(self) -> None:
        self.site: Optional[Site] = None


class Site:
    """Binds a component to its container under a name."""

    def __init__(
        self,
        component: Any,
        container: Optional["Container"] = None,
        name: Optional[str] = None,
        design_mode: bool = False,
    ):
        self.component = component
        self.container = container
        self.name = name
        self.design_mode = design_mode

    def get_service(self, service_type: type) -> Any:
        """Return the service of the given type, or None if it is not offered."""
        if self.container is None:
            return None
        return self.container.get_service(service_type)


class Container:
    """Owns sited components and the services they can look up."""

    def __init__(self, design_mode: bool = False):
        self.design_mode = design_mode
        self._components: List[Any] = []
        self._services: Dict[type, Any] = {}

    @property
    def components(self) -> Sequence[Any]:
        return tuple(self._components)

    def add(self, component: Any, name: Optional[str] = None) -> Site:
        """Site ``component`` in this container and return its new site."""
        if name is not None and any(
            c.site is not None and c.site.name == name for c in self._components
        ):
            raise ValueError(f"A component named '{name}' is already in the container")
        site = Site(component, self, name, self.design_mode)
        component.site = site
        self._components.append(component)
        logger.debug(f"Sited {type(component).__name__} as '{name}'")
        return site

    def remove(self, component: Any) -> None:
        if component in self._components:
            self._components.remove(component)
            component.site = None

    def add_service(self, service_type: type, service: Any) -> None:
        self._services[service_type] = service

    def remove_service(self, service_type: type) -> None:
        self._services.pop(service_type, None)

    def get_service(self, service_type: type) -> Any:
        if service_type is Container:
            return self
        service = self._services.get(service_type)
        if service is not None:
            return service
        for registered, candidate in self._services.items():
            if issubclass(registered, service_type):
                return candidate
        return None


class TypeDescriptorFilterService(ABC):
    """Consumer hook that may change the members of a sited component.

    Each method receives the name-keyed table of members and edits it in place.
    The return value tells whether the result may be cached.
    """

    @abstractmethod
    def filter_attributes(self, component: Any, attributes: Dict[Any, Any]) -> bool: ...

    @abstractmethod
    def filter_properties(self, component: Any, properties: Dict[str, Any]) -> bool: ...

    @abstractmethod
    def filter_events(self, component: Any, events: Dict[str, Any]) -> bool: ...


class ExtenderProvider(ABC):
    """Contributes extra properties to other objects.

    Subclasses declare what they provide with :class:`ProvidePropertyAttribute`
    and implement ``get_<Name>(receiver)`` (and optionally
    ``set_<Name>(receiver, value)``) for each provided property.
    """

    @abstractmethod
    def can_extend(self, extendee: Any) -> bool: ...


class ExtenderListService(ABC):
    """Service returning the extender providers active in a container."""

    @abstractmethod
    def get_extender_providers(self) -> Sequence[ExtenderProvider]: ...


class DesignerHost(ABC):
    """Authoring host able to return the designer of a component."""

    @abstractmethod
    def get_designer(self, component: Any) -> Any: ...
