"""Exceptions raised by the install, upgrade and manage operations."""


class AgentsError(Exception):
    """Base exception for mvagnon-agents errors."""
    pass


class CatalogNotFoundError(AgentsError):
    """Raised when the bundled catalog directory cannot be located."""
    pass


class NotBootstrappedError(AgentsError):
    """Raised when a project has no intermediate directory yet."""
    pass


class NoToolsDetectedError(AgentsError):
    """Raised when no configured tool directories are found in a project."""
    pass


class SetupCancelled(AgentsError):
    """Raised when the user cancels a prompt in the middle of an operation."""
    pass
