"""Reference in-process host preview runtime.

:class:`Preview` implements the :class:`~storydocs.preview.PreviewRuntime`
contract for pages rendered to static HTML: it reads story indexes, imports
the modules behind them, composes annotations (project, then component, then
story) into a loadable :class:`Story`, and renders stories either inline via
the configured adapter or into an ``<iframe srcdoc>``.

Each page that refreshes the shared handle adds its index and importer as a
story source keyed by that importer. A page loads through its own source, so
two pages whose stories compute the same id each get their own story. Loads
without an importer search the newest source first.

Sources are held for the lifetime of the preview, and each keeps its page's
index and examples alive. A process rendering many pages through one shared
preview therefore grows by one source per page; a page refreshing again
replaces its own source.
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import logging
import typing as typ
from html import escape

from ._constants import DEFAULT_EXPORT, STORY_INDEX_VERSION
from .config import ConfigError, ProjectAnnotations
from .csf import story_name_from_export, to_id
from .errors import (
    HostInitializationError,
    MissingInlineAdapterError,
    StoryLoadError,
    StoryNotFoundError,
)
from .module_index import ModuleExports, declared_attribute

if typ.TYPE_CHECKING:
    from .module_index import IndexEntry, StoryIndex
    from .preview import ImportFn
    from .surface import RenderSurface

logger = logging.getLogger(__name__)

StoryFn = cabc.Callable[[dict[str, typ.Any]], str]
Decorator = cabc.Callable[[cabc.Callable[[], str], dict[str, typ.Any]], str]


@dc.dataclass(slots=True)
class Story:
    """A story resolved from an index entry and ready to render.

    Attributes
    ----------
    id : str
        Canonical story id.
    name : str
        Display name (the export's declared ``name`` or its start-cased key).
    title : str
        Component title the story was indexed under.
    export_name : str
        Key of the story inside its module.
    parameters : dict[str, Any]
        Parameters merged from project, component and story annotations.
    args : dict[str, Any]
        Args merged in the same order.
    story_fn : StoryFn
        Function receiving ``args`` and returning markup.
    decorators : list[Decorator]
        Story decorators first, project decorators last.
    """

    id: str
    name: str
    title: str
    export_name: str
    parameters: dict[str, typ.Any]
    args: dict[str, typ.Any]
    story_fn: StoryFn
    decorators: list[Decorator] = dc.field(default_factory=list)

    def story_context(self) -> dict[str, typ.Any]:
        return {
            "id": self.id,
            "name": self.name,
            "title": self.title,
            "args": dict(self.args),
            "parameters": self.parameters,
        }

    def unbound_story_fn(self, context: dict[str, typ.Any]) -> str:
        """Run the decorated story function against ``context``."""

        def call(ctx: dict[str, typ.Any]) -> str:
            return self.story_fn(ctx["args"])

        render = call
        for decorator in self.decorators:
            render = _decorate(decorator, render)
        return render(context)


def _decorate(
    decorator: Decorator, inner: cabc.Callable[[dict[str, typ.Any]], str]
) -> cabc.Callable[[dict[str, typ.Any]], str]:
    def wrapped(context: dict[str, typ.Any]) -> str:
        return decorator(lambda: inner(context), context)

    return wrapped


@dc.dataclass(slots=True)
class _StorySource:
    get_story_index: cabc.Callable[[], StoryIndex]
    import_fn: ImportFn


class Preview:
    """Load and render stories for one or more pages."""

    def __init__(self) -> None:
        self._sources: dict[ImportFn, _StorySource] = {}
        self.project_annotations = ProjectAnnotations()

    @property
    def initialized(self) -> bool:
        return bool(self._sources)

    @property
    def source_count(self) -> int:
        return len(self._sources)

    def _track(self, source: _StorySource) -> None:
        self._sources.pop(source.import_fn, None)
        self._sources[source.import_fn] = source

    async def initialize(
        self,
        *,
        get_story_index: cabc.Callable[[], StoryIndex],
        import_fn: ImportFn,
        get_project_annotations: cabc.Callable[[], typ.Any],
    ) -> None:
        """Read project annotations and register the first story source.

        Raises
        ------
        HostInitializationError
            If the preview was already initialized, the annotations have an
            unusable shape, or the story index version is unsupported.
        """
        if self.initialized:
            msg = "Preview has already been initialized."
            raise HostInitializationError(msg)
        self.project_annotations = _coerce_annotations(get_project_annotations())
        _check_index(get_story_index())
        self._track(_StorySource(get_story_index, import_fn))
        logger.debug("preview initialized")

    def on_stories_changed(self, *, import_fn: ImportFn, story_index: StoryIndex) -> None:
        """Make ``import_fn`` and its index the newest story source."""
        if not self.initialized:
            msg = "Preview must be initialized before stories can change."
            raise HostInitializationError(msg)
        _check_index(story_index)
        self._track(_StorySource(lambda: story_index, import_fn))
        logger.debug("preview now tracks %d story sources", self.source_count)

    async def load_story(
        self, story_id: str, *, import_fn: ImportFn | None = None
    ) -> Story:
        """Resolve ``story_id`` through a story source.

        Parameters
        ----------
        story_id : str
            Id to look up.
        import_fn : ImportFn, optional
            Importer of the page asking; restricts the lookup to that page's
            source. Without it the newest source indexing the id is used.

        Raises
        ------
        StoryNotFoundError
            If the source is unknown, no source indexes the id, or its module
            lacks the export.
        StoryLoadError
            If the export cannot be turned into a story function.
        """
        if import_fn is None:
            sources = list(reversed(self._sources.values()))
        else:
            source = self._sources.get(import_fn)
            if source is None:
                msg = f"Cannot load '{story_id}': its page never reached this preview."
                raise StoryNotFoundError(msg)
            sources = [source]
        for source in sources:
            entry = source.get_story_index().entries.get(story_id)
            if entry is not None:
                module = await source.import_fn(entry.import_path)
                return self._process_story(entry, module)
        msg = f"Story '{story_id}' is not in any story index."
        raise StoryNotFoundError(msg)

    def render_story_to_surface(self, story: Story, surface: RenderSurface) -> None:
        """Render ``story`` and mount the markup on ``surface``."""
        context = story.story_context()
        options = surface.options
        if options.inline:
            if options.prepare_for_inline is None:
                msg = f"Story '{story.name}' cannot render inline without an adapter."
                raise MissingInlineAdapterError(msg)
            html = options.prepare_for_inline(
                lambda: story.unbound_story_fn(context), story
            )
        else:
            html = _iframe(story, story.unbound_story_fn(context), options.height)
        surface.mount(html)
        logger.debug("rendered %s into %s", story.id, surface.block_id)

    def _process_story(self, entry: IndexEntry, module: ModuleExports) -> Story:
        meta = module.get(DEFAULT_EXPORT)
        for export_name, export in module.items():
            if export_name == DEFAULT_EXPORT:
                continue
            if to_id(entry.title, export_name) == entry.id:
                break
        else:
            msg = f"Module '{entry.import_path}' has no export for '{entry.id}'."
            raise StoryNotFoundError(msg)

        project = self.project_annotations
        layers = (project, meta, export)
        parameters = _merge_parameters(
            project.parameters,
            declared_attribute(meta, "parameters"),
            declared_attribute(export, "parameters"),
        )
        args: dict[str, typ.Any] = {}
        for layer in layers:
            layer_args = declared_attribute(layer, "args")
            if isinstance(layer_args, cabc.Mapping):
                args.update(layer_args)
        decorators: list[Decorator] = []
        for layer in reversed(layers):
            decorators.extend(declared_attribute(layer, "decorators") or [])

        declared_name = declared_attribute(export, "name")
        if not isinstance(declared_name, str):
            declared_name = story_name_from_export(export_name)

        return Story(
            id=entry.id,
            name=declared_name,
            title=entry.title,
            export_name=export_name,
            parameters=parameters,
            args=args,
            story_fn=_story_function(export, meta, entry.id),
            decorators=decorators,
        )


def _coerce_annotations(value: object) -> ProjectAnnotations:
    match value:
        case ProjectAnnotations():
            return value
        case cabc.Mapping():
            try:
                return ProjectAnnotations.from_mapping(value)
            except ConfigError as exc:
                msg = f"Invalid project annotations: {exc}"
                raise HostInitializationError(msg) from exc
        case None:
            return ProjectAnnotations()
        case _:
            msg = f"Unsupported project annotations {value!r}."
            raise HostInitializationError(msg)


def _check_index(index: StoryIndex) -> None:
    if index.v != STORY_INDEX_VERSION:
        msg = f"Unsupported story index version {index.v}; expected {STORY_INDEX_VERSION}."
        raise HostInitializationError(msg)


def _story_function(export: object, meta: object, story_id: str) -> StoryFn:
    """Return the callable rendering a story export."""
    if callable(export):
        return export
    for source in (export, meta):
        render = declared_attribute(source, "render")
        if callable(render):
            return render
    msg = f"Story '{story_id}' is neither callable nor provides a 'render' function."
    raise StoryLoadError(msg)


def _merge_parameters(*layers: object) -> dict[str, typ.Any]:
    """Deep-merge mapping layers, later layers winning on conflicts."""
    merged: dict[str, typ.Any] = {}
    for layer in layers:
        if not isinstance(layer, cabc.Mapping):
            continue
        for key, value in layer.items():
            current = merged.get(key)
            if isinstance(current, cabc.Mapping) and isinstance(value, cabc.Mapping):
                merged[key] = _merge_parameters(current, value)
            else:
                merged[key] = value
    return merged


def _iframe(story: Story, html: str, height: str | int | None) -> str:
    style = ""
    if height is not None:
        size = f"{height}px" if isinstance(height, int) else height
        style = f' style="height: {escape(size)}"'
    return (
        f'<iframe class="storydocs-frame" title="{escape(story.name)}"'
        f' data-story-id="{escape(story.id)}"{style}'
        f' srcdoc="{escape(html)}"></iframe>'
    )


__all__ = ["Decorator", "Preview", "Story", "StoryFn"]
