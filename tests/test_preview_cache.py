"""Async tests for single-flight preview construction and the shared slot.

The fakes below record how often a host runtime is built, initialized and
refreshed so the tests can assert that concurrent callers coalesce onto one
construction and that later pages refresh rather than rebuild.
"""

from __future__ import annotations

import asyncio
import typing as typ

import pytest

from storydocs.errors import HostInitializationError
from storydocs.module_index import SyntheticModuleIndex
from storydocs.preview import PreviewCache, PreviewSlot

if typ.TYPE_CHECKING:
    from storydocs.module_index import StoryIndex


class RecordingPreview:
    """Host double whose initialization yields to the event loop."""

    def __init__(self) -> None:
        self.initialize_calls = 0
        self.refreshed_with: list[StoryIndex] = []
        self.import_fns: list[typ.Any] = []

    async def initialize(self, *, get_story_index, import_fn, get_project_annotations) -> None:
        self.initialize_calls += 1
        for _ in range(3):
            await asyncio.sleep(0)
        self.import_fns.append(import_fn)
        self.annotations = get_project_annotations()
        self.index = get_story_index()

    def on_stories_changed(self, *, import_fn, story_index) -> None:
        self.import_fns.append(import_fn)
        self.refreshed_with.append(story_index)

    async def load_story(self, story_id: str, *, import_fn=None) -> typ.Any:  # pragma: no cover
        raise NotImplementedError

    def render_story_to_surface(self, story, surface) -> None:  # pragma: no cover
        raise NotImplementedError


class FailingPreview(RecordingPreview):
    async def initialize(self, **kwargs: typ.Any) -> None:
        await asyncio.sleep(0)
        msg = "host exploded"
        raise HostInitializationError(msg)


def _factory(cls: type[RecordingPreview], created: list[RecordingPreview]):
    def build() -> RecordingPreview:
        preview = cls()
        created.append(preview)
        return preview

    return build


def _cache(
    slot: PreviewSlot,
    created: list[RecordingPreview],
    cls: type[RecordingPreview] = RecordingPreview,
) -> PreviewCache:
    return PreviewCache(
        SyntheticModuleIndex(), lambda: {"docs": True}, factory=_factory(cls, created), slot=slot
    )


@pytest.mark.asyncio
async def test_concurrent_calls_share_one_construction() -> None:
    created: list[RecordingPreview] = []
    slot = PreviewSlot()
    cache = _cache(slot, created)

    first, second = await asyncio.gather(cache.get_or_create(), cache.get_or_create())
    third = await cache.get_or_create()

    assert first is second is third, "expected every caller to receive one handle"
    assert len(created) == 1, f"expected one construction, got {len(created)}"
    assert created[0].initialize_calls == 1
    assert slot.handle is first
    assert first.annotations == {"docs": True}


@pytest.mark.asyncio
async def test_get_or_create_returns_cached_future() -> None:
    cache = _cache(PreviewSlot(), [])
    assert cache.get_or_create() is cache.get_or_create()
    await cache.get_or_create()


@pytest.mark.asyncio
async def test_second_page_refreshes_installed_handle() -> None:
    created: list[RecordingPreview] = []
    slot = PreviewSlot()
    first_page = _cache(slot, created)
    second_page = _cache(slot, created)

    first = await first_page.get_or_create()
    second = await second_page.get_or_create()

    assert first is second
    assert len(created) == 1, "second page must not build another runtime"
    assert first.refreshed_with == [second_page.get_story_index()]
    assert first.import_fns == [first_page.import_fn, second_page.import_fn]


@pytest.mark.asyncio
async def test_page_arriving_during_installation_waits_and_refreshes() -> None:
    created: list[RecordingPreview] = []
    slot = PreviewSlot()
    first_page = _cache(slot, created)
    second_page = _cache(slot, created)

    first, second = await asyncio.gather(
        first_page.get_or_create(), second_page.get_or_create()
    )

    assert first is second
    assert len(created) == 1
    assert len(first.refreshed_with) == 1


@pytest.mark.asyncio
async def test_initialization_failure_reaches_every_awaiter() -> None:
    created: list[RecordingPreview] = []
    slot = PreviewSlot()
    cache = _cache(slot, created, FailingPreview)

    results = await asyncio.gather(
        cache.get_or_create(), cache.get_or_create(), return_exceptions=True
    )

    assert all(isinstance(result, HostInitializationError) for result in results), (
        f"expected both awaiters to see the host error, got {results!r}"
    )
    assert len(created) == 1, "failed construction must not be retried by the page"
    with pytest.raises(HostInitializationError):
        await cache.get_or_create()
    assert len(created) == 1
    assert slot.handle is None


@pytest.mark.asyncio
async def test_failed_installation_frees_the_slot_for_later_pages() -> None:
    created: list[RecordingPreview] = []
    slot = PreviewSlot()
    with pytest.raises(HostInitializationError):
        await _cache(slot, created, FailingPreview).get_or_create()

    handle = await _cache(slot, created).get_or_create()

    assert slot.handle is handle
    assert [type(preview) for preview in created] == [FailingPreview, RecordingPreview]


@pytest.mark.asyncio
async def test_import_fn_resolves_registered_modules() -> None:
    index = SyntheticModuleIndex()
    meta = {"title": "Button"}

    def primary(args: dict[str, object]) -> str:
        return "<button/>"

    index.register(primary, meta)
    cache = PreviewCache(index, dict, factory=RecordingPreview, slot=PreviewSlot())

    module = await cache.import_fn("importPath-0")

    assert module == {"default": meta, "export-0": primary}
    assert cache.get_story_index() is index.story_index
