"""Lazy, single-flight construction of the shared preview runtime.

The host preview runtime is expensive and stateful, so a page creates at most
one and a process keeps at most one per :class:`PreviewSlot`. The first page
to ask builds and initializes it; later pages refresh the installed handle
with their own story index and importer instead of building another.

Example
-------
>>> import asyncio
>>> from storydocs.module_index import SyntheticModuleIndex
>>> from storydocs.preview import PreviewCache, PreviewSlot
>>> from storydocs.runtime import Preview
>>> async def demo():
...     cache = PreviewCache(
...         SyntheticModuleIndex(), dict, factory=Preview, slot=PreviewSlot()
...     )
...     first, second = await asyncio.gather(
...         cache.get_or_create(), cache.get_or_create()
...     )
...     return first is second
>>> asyncio.run(demo())  # doctest: +SKIP
True
"""

from __future__ import annotations

import asyncio
import collections.abc as cabc
import logging
import typing as typ

if typ.TYPE_CHECKING:
    from .module_index import ModuleExports, StoryIndex, SyntheticModuleIndex
    from .surface import RenderSurface

logger = logging.getLogger(__name__)

ImportFn = cabc.Callable[[str], cabc.Awaitable["ModuleExports"]]


class PreviewRuntime(typ.Protocol):
    """Narrow contract storydocs needs from a host preview runtime."""

    async def initialize(
        self,
        *,
        get_story_index: cabc.Callable[[], StoryIndex],
        import_fn: ImportFn,
        get_project_annotations: cabc.Callable[[], typ.Any],
    ) -> None: ...

    def on_stories_changed(self, *, import_fn: ImportFn, story_index: StoryIndex) -> None: ...

    async def load_story(
        self, story_id: str, *, import_fn: ImportFn | None = None
    ) -> typ.Any: ...

    def render_story_to_surface(self, story: typ.Any, surface: RenderSurface) -> None: ...


PreviewFactory = cabc.Callable[[], PreviewRuntime]


class PreviewSlot:
    """Hold the single preview handle shared by every page using this slot.

    Once a handle is installed it is never torn down or re-initialized. A
    failed installation leaves the slot empty so a later page may try again.
    """

    def __init__(self) -> None:
        self._handle: PreviewRuntime | None = None
        self._installing: asyncio.Future[PreviewRuntime] | None = None

    @property
    def handle(self) -> PreviewRuntime | None:
        return self._handle

    async def obtain(
        self,
        create: cabc.Callable[[], cabc.Awaitable[PreviewRuntime]],
        refresh: cabc.Callable[[PreviewRuntime], None],
    ) -> PreviewRuntime:
        """Return the installed handle, creating it or refreshing it as needed.

        Parameters
        ----------
        create : Callable
            Coroutine function building and initializing a new handle.
        refresh : Callable
            Called with an already installed (or concurrently installing)
            handle so the caller's stories become visible to it.

        Returns
        -------
        PreviewRuntime
            The slot's handle.
        """
        if self._handle is not None:
            refresh(self._handle)
            return self._handle
        if self._installing is not None:
            handle = await self._installing
            refresh(handle)
            return handle
        self._installing = asyncio.ensure_future(self._install(create))
        return await self._installing

    async def _install(
        self, create: cabc.Callable[[], cabc.Awaitable[PreviewRuntime]]
    ) -> PreviewRuntime:
        try:
            handle = await create()
        except Exception:
            self._installing = None
            raise
        self._handle = handle
        logger.debug("installed preview handle %r", handle)
        return handle


DEFAULT_PREVIEW_SLOT = PreviewSlot()


class PreviewCache:
    """Per-page memo of the preview future, wired to a synthetic module index."""

    def __init__(
        self,
        index: SyntheticModuleIndex,
        get_project_annotations: cabc.Callable[[], typ.Any],
        *,
        factory: PreviewFactory,
        slot: PreviewSlot | None = None,
    ) -> None:
        """Bind the cache to the page's stories and a host runtime factory.

        Parameters
        ----------
        index : SyntheticModuleIndex
            Page registry read lazily by the host.
        get_project_annotations : Callable
            Returns the caller's global configuration for the host.
        factory : PreviewFactory
            Zero-argument constructor of a host preview runtime.
        slot : PreviewSlot, optional
            Process-wide holder; defaults to :data:`DEFAULT_PREVIEW_SLOT`.
        """
        self._index = index
        self._get_project_annotations = get_project_annotations
        self._factory = factory
        self._slot = slot if slot is not None else DEFAULT_PREVIEW_SLOT
        self._future: asyncio.Future[PreviewRuntime] | None = None

    def get_or_create(self) -> asyncio.Future[PreviewRuntime]:
        """Return the page's preview future, starting construction on first call.

        Must be called from a running event loop. Every caller, concurrent or
        later, receives the same future; construction errors are re-raised to
        each awaiter and never retried for this page.
        """
        if self._future is None:
            loop = asyncio.get_running_loop()
            self._future = loop.create_task(
                self._slot.obtain(self._create, self._refresh)
            )
        return self._future

    def get_story_index(self) -> StoryIndex:
        return self._index.story_index

    async def import_fn(self, import_path: str) -> ModuleExports:
        return self._index.resolve_module(import_path)

    async def _create(self) -> PreviewRuntime:
        preview = self._factory()
        logger.debug("initializing new preview %r", preview)
        await preview.initialize(
            get_story_index=self.get_story_index,
            import_fn=self.import_fn,
            get_project_annotations=self._get_project_annotations,
        )
        return preview

    def _refresh(self, preview: PreviewRuntime) -> None:
        logger.debug("refreshing shared preview with %d stories", len(self._index))
        preview.on_stories_changed(
            import_fn=self.import_fn, story_index=self._index.story_index
        )


__all__ = [
    "DEFAULT_PREVIEW_SLOT",
    "ImportFn",
    "PreviewCache",
    "PreviewFactory",
    "PreviewRuntime",
    "PreviewSlot",
]
