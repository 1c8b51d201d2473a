"""Exceptions raised by the type description system."""

from __future__ import annotations

from typing import Optional


class TypeDescriptorError(Exception):
    """Base class for all type description errors."""


class ArgumentNullError(TypeDescriptorError, ValueError):
    """A required argument of a public entry point was ``None``."""

    def __init__(self, argument: str, message: Optional[str] = None):
        self.argument = argument
        super().__init__(message or f"Argument '{argument}' must not be None")


class ArgumentMismatchError(TypeDescriptorError, ValueError):
    """Argument type and argument value arrays do not line up."""


class InvalidAssociationError(TypeDescriptorError, ValueError):
    """An object cannot be associated with itself."""


class DuplicateAssociationError(TypeDescriptorError, ValueError):
    """The secondary object is already associated with the primary object."""


class ProviderContractError(TypeDescriptorError, RuntimeError):
    """A provider returned an invalid answer where the contract requires one.

    This indicates a broken plug-in and is never retried or swallowed.
    """

    def __init__(self, provider: object, operation: str, detail: Optional[str] = None):
        self.provider_name = f"{type(provider).__module__}.{type(provider).__qualname__}"
        self.operation = operation
        message = (
            f"Type description provider '{self.provider_name}' returned an "
            f"invalid result from '{operation}'"
        )
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class ConversionNotSupportedError(TypeDescriptorError, NotImplementedError):
    """A type converter cannot perform the requested conversion."""
