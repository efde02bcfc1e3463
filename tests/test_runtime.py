"""Tests for the reference host preview runtime."""

from __future__ import annotations

import typing as typ

import pytest

from storydocs.config import ProjectAnnotations
from storydocs.errors import (
    HostInitializationError,
    MissingInlineAdapterError,
    StoryLoadError,
    StoryNotFoundError,
)
from storydocs.module_index import StoryIndex, SyntheticModuleIndex
from storydocs.runtime import Preview
from storydocs.surface import RenderSurface, SurfaceOptions


def labelled(args: dict[str, typ.Any]) -> str:
    return f"<button>{args['label']}</button>"


def _wrap(tag: str):
    def decorator(story_fn: typ.Callable[[], str], context: dict[str, typ.Any]) -> str:
        return f"<{tag}>{story_fn()}</{tag}>"

    return decorator


async def _preview_for(
    index: SyntheticModuleIndex, annotations: object = None
) -> Preview:
    async def import_fn(path: str) -> dict[str, typ.Any]:
        return index.resolve_module(path)

    preview = Preview()
    await preview.initialize(
        get_story_index=lambda: index.story_index,
        import_fn=import_fn,
        get_project_annotations=lambda: annotations,
    )
    return preview


@pytest.mark.asyncio
async def test_load_story_composes_annotations() -> None:
    index = SyntheticModuleIndex()
    meta = {
        "title": "Button",
        "args": {"label": "Meta", "size": "md"},
        "parameters": {"docs": {"iframe_height": 50}, "layout": "centered"},
        "decorators": [_wrap("section")],
    }
    labelled.args = {"label": "Story"}  # type: ignore[attr-defined]
    labelled.parameters = {"docs": {"disable": False}}  # type: ignore[attr-defined]
    story_id = index.register(labelled, meta)
    annotations = ProjectAnnotations(
        parameters={"docs": {"iframe_height": 10}, "theme": "dark"},
        args={"size": "sm", "tone": "neutral"},
        decorators=[_wrap("main")],
    )
    preview = await _preview_for(index, annotations)

    story = await preview.load_story(story_id)

    assert story.name == "Export 0"
    assert story.export_name == "export-0"
    assert story.args == {"label": "Story", "size": "md", "tone": "neutral"}
    assert story.parameters == {
        "docs": {"iframe_height": 50, "disable": False},
        "theme": "dark",
        "layout": "centered",
    }
    rendered = story.unbound_story_fn(story.story_context())
    assert rendered == "<main><section><button>Story</button></section></main>", (
        f"expected story decorators innermost, project outermost; got {rendered!r}"
    )


@pytest.mark.asyncio
async def test_declared_name_and_render_fallback() -> None:
    index = SyntheticModuleIndex()
    meta = {"title": "Card", "render": lambda args: f"<article>{args['body']}</article>"}
    story = {"name": "With Body", "args": {"body": "Hello"}}
    story_id = index.register(story, meta)
    preview = await _preview_for(index, {"args": {}})

    loaded = await preview.load_story(story_id)

    assert loaded.name == "With Body"
    assert loaded.unbound_story_fn(loaded.story_context()) == "<article>Hello</article>"


@pytest.mark.asyncio
async def test_story_without_render_function_fails_to_load() -> None:
    index = SyntheticModuleIndex()
    story_id = index.register({"args": {}}, {"title": "Broken"})
    preview = await _preview_for(index)
    with pytest.raises(StoryLoadError, match="broken--export-0"):
        await preview.load_story(story_id)


@pytest.mark.asyncio
async def test_unknown_story_id_is_not_found() -> None:
    preview = await _preview_for(SyntheticModuleIndex())
    with pytest.raises(StoryNotFoundError):
        await preview.load_story("button--missing")


@pytest.mark.asyncio
async def test_load_story_scoped_to_a_page_importer() -> None:
    first, second = SyntheticModuleIndex(), SyntheticModuleIndex()
    labelled.args = {"label": "First"}  # type: ignore[attr-defined]
    story_id = first.register(labelled, {"title": "Button"})

    def other(args: dict[str, typ.Any]) -> str:
        return "<button>Second</button>"

    assert second.register(other, {"title": "Button"}) == story_id

    async def first_import(path: str) -> dict[str, typ.Any]:
        return first.resolve_module(path)

    async def second_import(path: str) -> dict[str, typ.Any]:
        return second.resolve_module(path)

    preview = Preview()
    await preview.initialize(
        get_story_index=lambda: first.story_index,
        import_fn=first_import,
        get_project_annotations=dict,
    )
    preview.on_stories_changed(import_fn=second_import, story_index=second.story_index)

    assert (await preview.load_story(story_id)).story_fn is other
    scoped = await preview.load_story(story_id, import_fn=first_import)
    assert scoped.story_fn is labelled

    async def stranger(path: str) -> dict[str, typ.Any]:
        return {}

    with pytest.raises(StoryNotFoundError, match="never reached"):
        await preview.load_story(story_id, import_fn=stranger)


@pytest.mark.asyncio
async def test_refreshing_the_same_page_replaces_its_source() -> None:
    index = SyntheticModuleIndex()
    index.register(labelled, {"title": "Button"})

    async def import_fn(path: str) -> dict[str, typ.Any]:
        return index.resolve_module(path)

    preview = Preview()
    await preview.initialize(
        get_story_index=lambda: index.story_index,
        import_fn=import_fn,
        get_project_annotations=dict,
    )
    preview.on_stories_changed(import_fn=import_fn, story_index=index.story_index)
    preview.on_stories_changed(import_fn=import_fn, story_index=index.story_index)

    assert preview.source_count == 1


@pytest.mark.asyncio
async def test_initialize_rejects_bad_annotations_and_reinitialization() -> None:
    index = SyntheticModuleIndex()
    with pytest.raises(HostInitializationError, match="annotations"):
        await _preview_for(index, ["not", "a", "mapping"])

    preview = await _preview_for(index)
    with pytest.raises(HostInitializationError, match="already"):
        await preview.initialize(
            get_story_index=lambda: index.story_index,
            import_fn=index.resolve_module,
            get_project_annotations=dict,
        )


@pytest.mark.asyncio
async def test_initialize_rejects_unknown_index_version() -> None:
    async def import_fn(path: str) -> dict[str, typ.Any]:
        return {}

    with pytest.raises(HostInitializationError, match="version"):
        await Preview().initialize(
            get_story_index=lambda: StoryIndex(v=3),
            import_fn=import_fn,
            get_project_annotations=dict,
        )


def test_refresh_requires_initialization() -> None:
    with pytest.raises(HostInitializationError):
        Preview().on_stories_changed(import_fn=None, story_index=StoryIndex())  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_render_inline_and_iframe() -> None:
    index = SyntheticModuleIndex()
    labelled.args = {"label": "Go"}  # type: ignore[attr-defined]
    story_id = index.register(labelled, {"title": "Button"})
    preview = await _preview_for(index)
    story = await preview.load_story(story_id)

    iframe = RenderSurface(options=SurfaceOptions(height=120))
    preview.render_story_to_surface(story, iframe)
    assert iframe.html is not None
    assert 'style="height: 120px"' in iframe.html
    assert 'data-story-id="button--export-0"' in iframe.html

    inline = RenderSurface(
        options=SurfaceOptions(
            inline=True,
            prepare_for_inline=lambda story_fn, unit: f"<div id='{unit.id}'>{story_fn()}</div>",
        )
    )
    preview.render_story_to_surface(story, inline)
    assert inline.html == "<div id='button--export-0'><button>Go</button></div>"

    with pytest.raises(MissingInlineAdapterError):
        preview.render_story_to_surface(
            story, RenderSurface(options=SurfaceOptions(inline=True))
        )
