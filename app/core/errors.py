# app/core/errors.py
from __future__ import annotations


class LifecycleError(ValueError):
    """
    Base for every error raised by the lifecycle controllers.

    Subclasses ValueError so the routers can keep mapping domain
    rejections to 409 the same way they always have.
    """


class ValidationError(LifecycleError):
    """A draft is missing required data. Left untouched, retried next window."""

    def __init__(self, missing_fields):
        self.missing_fields = list(missing_fields)
        super().__init__(f"Missing required fields: {', '.join(self.missing_fields)}")


class PreconditionNotMet(LifecycleError):
    """The transition guard does not hold (yet). Skipped silently."""


class DependencyFailure(LifecycleError):
    """Document generator or store call failed. Entity is rolled back and retried."""


class NotFound(LifecycleError):
    pass


class InvalidTransition(LifecycleError):
    """An externally requested transition is not allowed from the current state."""
