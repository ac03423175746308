"""Infrastructure helpers scoped to post publication."""

from . import storage  # noqa: F401

__all__ = ["storage"]
