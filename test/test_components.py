"""
Tests for the component model and registry settings.
"""

import pytest
from pydantic import ValidationError

from typedesc.core.components import (
    Component,
    Container,
    DesignerHost,
    ExtenderListService,
    Site,
)
from typedesc.core.settings import DEFAULT_ENTRY_POINT_GROUP, RegistrySettings


class Host(DesignerHost):
    def get_designer(self, component):
        return None


class TestContainer:
    """Test siting components in a container."""

    def test_add_sites_component(self):
        """Test that adding a component gives it a site."""
        container = Container()
        component = Component()
        site = container.add(component, "first")

        assert component.site is site
        assert site.component is component
        assert site.container is container
        assert site.name == "first"
        assert not site.design_mode
        assert container.components == (component,)

    def test_design_mode_is_propagated(self):
        """Test that sites inherit the container design mode."""
        container = Container(design_mode=True)
        assert container.add(Component()).design_mode

    def test_duplicate_name_rejected(self):
        """Test that two components cannot share a name."""
        container = Container()
        container.add(Component(), "first")
        with pytest.raises(ValueError, match="already in the container"):
            container.add(Component(), "first")

    def test_unnamed_components(self):
        """Test that several unnamed components may be added."""
        container = Container()
        container.add(Component())
        container.add(Component())
        assert len(container.components) == 2

    def test_remove(self):
        """Test that removing a component clears its site."""
        container = Container()
        component = Component()
        container.add(component, "first")
        container.remove(component)

        assert component.site is None
        assert container.components == ()


class TestServices:
    """Test service lookup through containers and sites."""

    def test_exact_and_subclass_lookup(self):
        """Test that services are found by exact type, then by base class."""
        container = Container()
        host = Host()
        container.add_service(Host, host)

        assert container.get_service(Host) is host
        assert container.get_service(DesignerHost) is host
        assert container.get_service(ExtenderListService) is None

    def test_container_is_its_own_service(self):
        """Test that the container answers for itself."""
        container = Container()
        assert container.get_service(Container) is container

    def test_site_forwards_to_container(self):
        """Test that a site looks services up in its container."""
        container = Container()
        host = Host()
        container.add_service(DesignerHost, host)
        site = container.add(Component())

        assert site.get_service(DesignerHost) is host

    def test_detached_site(self):
        """Test that a site without container offers nothing."""
        assert Site(Component()).get_service(DesignerHost) is None

    def test_remove_service(self):
        """Test removing a service."""
        container = Container()
        container.add_service(Host, Host())
        container.remove_service(Host)
        container.remove_service(Host)

        assert container.get_service(Host) is None


class TestRegistrySettings:
    """Test the RegistrySettings model."""

    def test_defaults(self):
        """Test the default settings."""
        settings = RegistrySettings()

        assert not settings.trace
        assert not settings.discover_providers
        assert settings.entry_point_group == DEFAULT_ENTRY_POINT_GROUP

    def test_from_env(self):
        """Test reading settings from environment variables."""
        settings = RegistrySettings.from_env(
            {
                "TYPEDESC_TRACE": "Yes",
                "TYPEDESC_DISCOVER_PROVIDERS": "0",
                "TYPEDESC_ENTRY_POINT_GROUP": "acme.providers",
            }
        )

        assert settings.trace
        assert not settings.discover_providers
        assert settings.entry_point_group == "acme.providers"

    def test_from_empty_env(self):
        """Test that missing variables keep the defaults."""
        assert RegistrySettings.from_env({}) == RegistrySettings()

    def test_from_process_env(self, monkeypatch):
        """Test reading the process environment."""
        monkeypatch.setenv("TYPEDESC_DISCOVER_PROVIDERS", "true")
        monkeypatch.delenv("TYPEDESC_TRACE", raising=False)

        settings = RegistrySettings.from_env()
        assert settings.discover_providers
        assert not settings.trace

    def test_frozen_and_strict(self):
        """Test that settings are immutable and reject unknown options."""
        settings = RegistrySettings()
        with pytest.raises(ValidationError):
            settings.trace = True
        with pytest.raises(ValidationError):
            RegistrySettings(unknown=True)
