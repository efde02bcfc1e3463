"""Exceptions raised by the story registry and render pipeline.

Every error is fatal at the point of detection: nothing in storydocs retries
or recovers locally, so callers see the failure exactly where the page tree
asked for the offending operation.
"""

from __future__ import annotations


class StoryDocsError(RuntimeError):
    """Base class for storydocs failures."""


class MissingPageMetadataError(StoryDocsError):
    """Raised when a story is added before any page metadata is known."""


class UnregisteredExampleError(StoryDocsError):
    """Raised when rendering an example that was never passed to ``add_story``."""


class UnresolvableIdentifierError(StoryDocsError):
    """Raised when a story block carries neither an id nor a resolvable name."""


class MissingInlineAdapterError(StoryDocsError):
    """Raised when inline rendering is requested without ``prepare_for_inline``."""


class UnsupportedOperationError(StoryDocsError, NotImplementedError):
    """Raised by context capabilities the external docs embedding omits."""


class HostInitializationError(StoryDocsError):
    """Raised by a host preview runtime that cannot initialize."""


class ModuleNotRegisteredError(StoryDocsError, LookupError):
    """Raised when the host imports a path the synthetic index never issued."""


class StoryNotFoundError(StoryDocsError, LookupError):
    """Raised when the host is asked for a story id absent from every index."""


class StoryLoadError(StoryDocsError):
    """Raised when a registered export cannot be turned into a story."""


__all__ = [
    "HostInitializationError",
    "MissingInlineAdapterError",
    "MissingPageMetadataError",
    "ModuleNotRegisteredError",
    "StoryDocsError",
    "StoryLoadError",
    "StoryNotFoundError",
    "UnregisteredExampleError",
    "UnresolvableIdentifierError",
    "UnsupportedOperationError",
]
