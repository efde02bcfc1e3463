"""Docs context for pages whose stories are declared inline.

:class:`ExternalDocsContext` is what a page tree talks to while it is being
built and rendered: it records page metadata, registers each story into a
:class:`~storydocs.module_index.SyntheticModuleIndex`, lazily obtains the
shared preview runtime and drives stories through it.

The embedding supports a reduced capability set. Capabilities of the full
:class:`DocsContext` protocol that only make sense for file-indexed stories
raise :class:`~storydocs.errors.UnsupportedOperationError`.

Example
-------
>>> import asyncio
>>> from storydocs.context import ExternalDocsContext
>>> from storydocs.preview import PreviewSlot
>>> from storydocs.surface import RenderSurface
>>> context = ExternalDocsContext(preview_slot=PreviewSlot())
>>> context.set_meta({"title": "Button"})
>>> def primary(args):
...     return "<button>Primary</button>"
>>> context.add_story(primary)
'button--export-0'
>>> surface = RenderSurface()
>>> asyncio.run(context.render_story(primary, surface))  # doctest: +SKIP
>>> surface.mounted  # doctest: +SKIP
True
"""

from __future__ import annotations

import collections.abc as cabc
import logging
import typing as typ

from ._constants import (
    EXTERNAL_DOCS_ID,
    EXTERNAL_DOCS_NAME,
    EXTERNAL_DOCS_TITLE,
    EXTERNAL_DOCS_TYPE,
    UNKNOWN_STORY_ID,
)
from .config import ProjectAnnotations
from .errors import (
    MissingPageMetadataError,
    UnregisteredExampleError,
    UnsupportedOperationError,
)
from .module_index import SyntheticModuleIndex
from .preview import PreviewCache
from .runtime import Preview

if typ.TYPE_CHECKING:
    import asyncio

    from .allocator import IdentifierAllocator
    from .preview import PreviewFactory, PreviewRuntime, PreviewSlot
    from .surface import RenderSurface

logger = logging.getLogger(__name__)


class DocsContext(typ.Protocol):
    """Full capability surface a docs page may ask of its context."""

    type: str
    id: str
    title: str
    name: str
    project_annotations: ProjectAnnotations
    mdx_story_name_to_key: cabc.Mapping[str, str]
    mdx_component_annotations: cabc.Mapping[str, typ.Any]

    @property
    def page_meta(self) -> object | None: ...

    def set_meta(self, meta: object) -> None: ...

    def add_story(self, example: object, meta: object | None = None) -> str: ...

    async def render_story(self, example: object, surface: RenderSurface) -> None: ...

    async def render_story_by_id(self, story_id: str, surface: RenderSurface) -> None: ...

    def story_id_by_module_export(self, example: object) -> str: ...

    def registered_example(self, story_id: str) -> tuple[object, object] | None: ...

    def story_by_id(self, story_id: str) -> typ.Any: ...

    def get_story_context(self, story: typ.Any) -> dict[str, typ.Any]: ...

    def component_stories(self) -> list[typ.Any]: ...

    def preloaded_stories(self) -> list[typ.Any]: ...

    def load_story(self, story_id: str) -> cabc.Awaitable[typ.Any]: ...

    def render_story_to_element(self, story: typ.Any, element: typ.Any) -> None: ...


def _unsupported(capability: str) -> typ.NoReturn:
    msg = f"'{capability}' is not available for externally declared docs."
    raise UnsupportedOperationError(msg)


class ExternalDocsContext:
    """Context provider backing a page of inline-declared stories."""

    type = EXTERNAL_DOCS_TYPE
    id = EXTERNAL_DOCS_ID
    title = EXTERNAL_DOCS_TITLE
    name = EXTERNAL_DOCS_NAME

    def __init__(
        self,
        project_annotations: ProjectAnnotations | None = None,
        *,
        preview_factory: PreviewFactory = Preview,
        preview_slot: PreviewSlot | None = None,
        mdx_story_name_to_key: cabc.Mapping[str, str] | None = None,
        mdx_component_annotations: cabc.Mapping[str, typ.Any] | None = None,
        allocator: IdentifierAllocator | None = None,
    ) -> None:
        """Create the per-page registry and preview cache.

        Parameters
        ----------
        project_annotations : ProjectAnnotations, optional
            Global configuration handed to the host runtime and consulted when
            preparing story blocks. Defaults to empty annotations.
        preview_factory : PreviewFactory, optional
            Host runtime constructor; defaults to :class:`~storydocs.runtime.Preview`.
        preview_slot : PreviewSlot, optional
            Process-wide holder for the shared preview; defaults to the module
            level slot.
        mdx_story_name_to_key : Mapping[str, str], optional
            Story display name to export key table for by-name story blocks.
        mdx_component_annotations : Mapping[str, Any], optional
            Enclosing component ``id``/``title`` used by by-name lookups.
        allocator : IdentifierAllocator, optional
            Token allocator for the page registry; a fresh one by default.
        """
        self.project_annotations = project_annotations or ProjectAnnotations()
        self.mdx_story_name_to_key = dict(mdx_story_name_to_key or {})
        self.mdx_component_annotations = dict(mdx_component_annotations or {})
        self.index = SyntheticModuleIndex(allocator)
        self.preview_cache = PreviewCache(
            self.index,
            lambda: self.project_annotations,
            factory=preview_factory,
            slot=preview_slot,
        )
        self._page_meta: object | None = None

    @property
    def page_meta(self) -> object | None:
        return self._page_meta

    def set_meta(self, meta: object) -> None:
        """Set the page metadata, replacing any previous value."""
        self._page_meta = meta

    def add_story(self, example: object, meta: object | None = None) -> str:
        """Register ``example`` under ``meta`` or the page metadata.

        Returns
        -------
        str
            The story id computed for the example.

        Raises
        ------
        MissingPageMetadataError
            If no explicit metadata is given and :meth:`set_meta` was never
            called.
        """
        effective = meta if meta is not None else self._page_meta
        if effective is None:
            msg = (
                f"Cannot add story {example!r}: no metadata given and no page "
                "metadata has been set."
            )
            raise MissingPageMetadataError(msg)
        story_id = self.index.register(example, effective)
        logger.debug("registered %r as %s", example, story_id)
        return story_id

    def get_preview(self) -> asyncio.Future[PreviewRuntime]:
        return self.preview_cache.get_or_create()

    async def render_story(self, example: object, surface: RenderSurface) -> None:
        """Render a registered example into ``surface``.

        Raises
        ------
        UnregisteredExampleError
            If ``example`` was never added; raised before the host is touched.
        """
        story_id = self.index.story_id_for(example)
        if story_id is None:
            msg = f"Didn't find a story id for {example!r}; was it added to the page?"
            raise UnregisteredExampleError(msg)
        await self.render_story_by_id(story_id, surface)

    async def render_story_by_id(self, story_id: str, surface: RenderSurface) -> None:
        """Load ``story_id`` from this page's stories via the shared preview and render it."""
        preview = await self.get_preview()
        story = await preview.load_story(
            story_id, import_fn=self.preview_cache.import_fn
        )
        preview.render_story_to_surface(story, surface)

    def story_id_by_module_export(self, example: object) -> str:
        """Return the story id of ``example`` or ``"unknown"``."""
        return self.index.story_id_for(example) or UNKNOWN_STORY_ID

    def registered_example(self, story_id: str) -> tuple[object, object] | None:
        """Return the example and metadata currently registered under ``story_id``."""
        return self.index.example_for(story_id)

    def story_by_id(self, story_id: str) -> typ.Any:
        _unsupported("story_by_id")

    def get_story_context(self, story: typ.Any) -> dict[str, typ.Any]:
        _unsupported("get_story_context")

    def component_stories(self) -> list[typ.Any]:
        _unsupported("component_stories")

    def preloaded_stories(self) -> list[typ.Any]:
        return []

    def load_story(self, story_id: str) -> cabc.Awaitable[typ.Any]:
        _unsupported("load_story")

    def render_story_to_element(self, story: typ.Any, element: typ.Any) -> None:
        _unsupported("render_story_to_element")


__all__ = ["DocsContext", "ExternalDocsContext"]
