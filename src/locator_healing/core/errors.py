"""Exception types for the locator self-healing system."""

from typing import Optional


class HealingError(Exception):
    """Base class for self-healing errors."""
    pass


class StorageError(HealingError):
    """A persistence read or write failed.

    Raised inside store implementations and caught at the store boundary,
    where it is logged and the operation degrades to an empty result.
    """

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        self.operation = operation
        self.cause = cause
        message = f"Storage operation '{operation}' failed"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class LocateFailed(HealingError):
    """A single locate strategy did not find a matching element."""

    def __init__(self, strategy: str, reason: str):
        self.strategy = strategy
        self.reason = reason
        super().__init__(f"{strategy} locate failed: {reason}")


class ConfigurationError(HealingError):
    """Raised when configuration is invalid or cannot be loaded."""
    pass
