"""High-level orchestration for rendering one docs page.

:class:`DocsPageRenderer` walks a :class:`DocsPage` in two phases. The walk
itself is synchronous: it records page metadata, registers every ``of``
story, resolves ids for by-id and by-name blocks and prepares each block's
layout, so the synthetic index is complete and every policy failure has
surfaced before anything suspends. Renders are then dispatched concurrently
through the page's :class:`~storydocs.context.ExternalDocsContext` and the
results are assembled with the ``docs_page.jinja`` template.

Example
-------
>>> import asyncio
>>> from storydocs.blocks import Markdown, Meta, Story
>>> from storydocs.page import DocsPage, DocsPageRenderer
>>> def primary(args):
...     return "<button>Primary</button>"
>>> page = DocsPage(
...     title="Button",
...     blocks=[Meta({"title": "Button"}), Markdown("Buttons!"), Story(of=primary)],
... )
>>> rendered = asyncio.run(DocsPageRenderer(page).render())  # doctest: +SKIP
>>> rendered.story_ids  # doctest: +SKIP
['button--export-0']
"""

from __future__ import annotations

import asyncio
import collections.abc as cabc
import dataclasses as dc
import datetime as dt
import logging
import typing as typ
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from .blocks import (
    Block,
    Markdown,
    Meta,
    Story,
    get_story_id,
    prepare_story_block,
    story_block_id_from_id,
)
from .context import ExternalDocsContext
from .renderer import HtmlContentRenderer
from .runtime import Preview
from .surface import RenderSurface

if typ.TYPE_CHECKING:
    from .config import ProjectAnnotations
    from .preview import PreviewFactory, PreviewSlot

logger = logging.getLogger(__name__)


@dc.dataclass(slots=True)
class DocsPage:
    """A page tree of blocks plus the tables by-name story blocks rely on."""

    title: str
    blocks: list[Block]
    story_name_to_key: dict[str, str] = dc.field(default_factory=dict)
    component_annotations: dict[str, typ.Any] = dc.field(default_factory=dict)


@dc.dataclass(slots=True)
class RenderedBlock:
    """Structured data passed to the page template for one block.

    Attributes
    ----------
    kind : str
        ``"markdown"`` or ``"story"``.
    html : str
        Rendered markup (story markup already mounted by the host).
    anchor : str | None
        DOM id for story blocks.
    story_id : str | None
        Story id for story blocks.
    inline : bool
        Whether the story rendered inline.
    source_html : str | None
        Highlighted story source when requested.
    """

    kind: str
    html: str
    anchor: str | None = None
    story_id: str | None = None
    inline: bool = False
    source_html: str | None = None


@dc.dataclass(slots=True)
class RenderedPage:
    title: str
    blocks: list[RenderedBlock]
    html: str

    @property
    def story_ids(self) -> list[str]:
        return [block.story_id for block in self.blocks if block.story_id]


@dc.dataclass(slots=True)
class _PlannedStory:
    block: Story
    story_id: str
    surface: RenderSurface


class DocsPageRenderer:
    """Register a page's stories, render them and emit the page HTML."""

    def __init__(
        self,
        page: DocsPage,
        project_annotations: ProjectAnnotations | None = None,
        *,
        templates_dir: Path | None = None,
        preview_factory: PreviewFactory = Preview,
        preview_slot: PreviewSlot | None = None,
        pygments_style: str = "monokai",
    ) -> None:
        """Initialize the renderer with its page context and template.

        Parameters
        ----------
        page : DocsPage
            Page tree to render.
        project_annotations : ProjectAnnotations, optional
            Global story configuration; defaults to empty annotations.
        templates_dir : Path, optional
            Directory containing Jinja templates; defaults to the package templates.
        preview_factory : PreviewFactory, optional
            Host runtime constructor used when no shared preview exists yet.
        preview_slot : PreviewSlot, optional
            Process-wide preview holder; defaults to the module-level slot.
        pygments_style : str, optional
            Style for highlighted prose and source blocks.
        """
        self.page = page
        self.context = ExternalDocsContext(
            project_annotations,
            preview_factory=preview_factory,
            preview_slot=preview_slot,
            mdx_story_name_to_key=page.story_name_to_key,
            mdx_component_annotations=page.component_annotations,
        )
        self.renderer = HtmlContentRenderer(pygments_style)
        default_templates = Path(__file__).resolve().parent / "templates"
        self.templates_dir = templates_dir or default_templates
        self.env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            autoescape=select_autoescape(["html", "xml", "jinja"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.template = self.env.get_template("docs_page.jinja")

    def plan(self) -> list[RenderedBlock | _PlannedStory]:
        """Walk the page tree synchronously, registering and preparing stories.

        Returns
        -------
        list
            Markdown blocks already rendered and story blocks awaiting their
            render, in page order. Disabled stories are omitted.

        Raises
        ------
        MissingPageMetadataError
            If a story is declared before any :class:`Meta` block.
        UnresolvableIdentifierError
            If a by-name block cannot be resolved.
        MissingInlineAdapterError
            If a block requests inline rendering without an adapter.
        """
        planned: list[RenderedBlock | _PlannedStory] = []
        for block in self.page.blocks:
            match block:
                case Meta(of=meta):
                    self.context.set_meta(meta)
                case Markdown(text=text):
                    planned.append(
                        RenderedBlock(kind="markdown", html=self.renderer.markdown(text))
                    )
                case Story():
                    if block.of is not None:
                        story_id = self.context.add_story(block.of, block.meta)
                    else:
                        story_id = get_story_id(block, self.context)
                    options = prepare_story_block(block, self.context)
                    if options is None:
                        logger.debug("docs disabled for %s; skipping", story_id)
                        continue
                    surface = RenderSurface(
                        block_id=story_block_id_from_id(story_id), options=options
                    )
                    planned.append(_PlannedStory(block, story_id, surface))
                case _:
                    msg = f"Unsupported block {block!r}."
                    raise TypeError(msg)
        return planned

    async def render(self) -> RenderedPage:
        """Render the whole page.

        Returns
        -------
        RenderedPage
            Rendered blocks and the final HTML document.
        """
        planned = self.plan()
        stories = [item for item in planned if isinstance(item, _PlannedStory)]
        await asyncio.gather(*(self._render_story(item) for item in stories))

        blocks = [
            item if isinstance(item, RenderedBlock) else self._to_rendered(item)
            for item in planned
        ]
        html = self.template.render(
            title=self.page.title,
            blocks=blocks,
            pygments_css=self.renderer.stylesheet,
            generated_at=dt.datetime.now(dt.UTC),
        )
        return RenderedPage(title=self.page.title, blocks=blocks, html=html)

    async def _render_story(self, item: _PlannedStory) -> None:
        if item.block.of is not None:
            await self.context.render_story(item.block.of, item.surface)
        else:
            await self.context.render_story_by_id(item.story_id, item.surface)

    def _to_rendered(self, item: _PlannedStory) -> RenderedBlock:
        source_html = None
        if item.block.show_source and item.block.of is not None:
            source_html = self.renderer.story_source(item.block.of)
        return RenderedBlock(
            kind="story",
            html=item.surface.html or "",
            anchor=item.surface.block_id,
            story_id=item.story_id,
            inline=item.surface.options.inline,
            source_html=source_html,
        )


def render_pages(
    pages: cabc.Iterable[DocsPage],
    project_annotations: ProjectAnnotations | None = None,
    *,
    preview_slot: PreviewSlot | None = None,
    preview_factory: PreviewFactory = Preview,
) -> list[RenderedPage]:
    """Render several pages in one event loop, sharing one preview slot."""

    async def _render_all() -> list[RenderedPage]:
        rendered: list[RenderedPage] = []
        for page in pages:
            renderer = DocsPageRenderer(
                page,
                project_annotations,
                preview_factory=preview_factory,
                preview_slot=preview_slot,
            )
            rendered.append(await renderer.render())
        return rendered

    return asyncio.run(_render_all())


__all__ = [
    "DocsPage",
    "DocsPageRenderer",
    "RenderedBlock",
    "RenderedPage",
    "render_pages",
]
