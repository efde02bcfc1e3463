"""Building blocks of a docs page and story block preparation.

A page is a flat sequence of :class:`Meta`, :class:`Markdown` and
:class:`Story` blocks. Story blocks reference a story in one of three ways:

* ``of``: the story export itself, registered into the page context;
* ``id``: an explicit story id, or :data:`CURRENT_SELECTION` for the page's
  own id;
* ``name``: a display name resolved through the context's
  ``mdx_story_name_to_key`` table and component annotations.

Before anything is rendered, :func:`prepare_story_block` merges the ``docs``
parameters and decides how (and whether) the story is laid out.

Example
-------
>>> from storydocs.blocks import Story, get_story_id
>>> from storydocs.context import ExternalDocsContext
>>> context = ExternalDocsContext(
...     mdx_story_name_to_key={"Primary": "primary"},
...     mdx_component_annotations={"title": "Button"},
... )
>>> get_story_id(Story(name="Primary"), context)
'button--primary'
>>> get_story_id(Story(id="."), context)
'external-docs'
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import typing as typ

from ._constants import (
    CURRENT_SELECTION,
    DEFAULT_IFRAME_HEIGHT,
    STORY_BLOCK_ID_TEMPLATE,
)
from .config import DOCS_PARAMETER, INLINE_ADAPTER_KEY
from .csf import story_name_from_export, to_id
from .errors import MissingInlineAdapterError, UnresolvableIdentifierError
from .module_index import declared_attribute
from .surface import SurfaceOptions

if typ.TYPE_CHECKING:
    from .context import DocsContext


@dc.dataclass(slots=True)
class Meta:
    """Declare the page metadata (component title, parameters, args)."""

    of: object


@dc.dataclass(slots=True)
class Markdown:
    """Prose rendered between stories."""

    text: str


@dc.dataclass(slots=True)
class Story:
    """Embed one story.

    Attributes
    ----------
    of : object | None
        Story export to register and render.
    meta : object | None
        Metadata owning ``of`` when it differs from the page metadata.
    id : str | None
        Explicit story id, or ``"."`` for the current selection.
    name : str | None
        Display name looked up through the context's name table.
    inline : bool | None
        Force inline (``True``) or iframe (``False``) rendering.
    height : str | int | None
        Iframe height override.
    show_source : bool
        Append the highlighted source of ``of`` below the story.
    """

    of: object | None = None
    meta: object | None = None
    id: str | None = None
    name: str | None = None
    inline: bool | None = None
    height: str | int | None = None
    show_source: bool = False


Block = Meta | Markdown | Story


def story_block_id_from_id(story_id: str) -> str:
    """Return the DOM anchor used for a rendered story block."""
    return STORY_BLOCK_ID_TEMPLATE.format(story_id=story_id)


def lookup_story_id(story_name: str, context: DocsContext) -> str:
    """Compute a story id from a display name and the enclosing component.

    Raises
    ------
    UnresolvableIdentifierError
        If the name is not in ``mdx_story_name_to_key`` or the component has
        neither an ``id`` nor a ``title``.
    """
    export_key = context.mdx_story_name_to_key.get(story_name)
    if export_key is None:
        msg = f"No story named '{story_name}' is declared on this page."
        raise UnresolvableIdentifierError(msg)
    annotations = context.mdx_component_annotations
    component = annotations.get("id") or annotations.get("title")
    if not component:
        msg = f"Cannot resolve story '{story_name}' without a component id or title."
        raise UnresolvableIdentifierError(msg)
    return to_id(component, story_name_from_export(export_key))


def get_story_id(block: Story, context: DocsContext) -> str:
    """Resolve the story id a block refers to without allocating anything.

    Raises
    ------
    UnresolvableIdentifierError
        If the block has no ``of``, no ``id`` and no resolvable ``name``.
    """
    if block.of is not None:
        return context.story_id_by_module_export(block.of)
    input_id = context.id if block.id == CURRENT_SELECTION else block.id
    if input_id:
        return input_id
    if not block.name:
        msg = "Story block needs one of 'of', 'id' or 'name'."
        raise UnresolvableIdentifierError(msg)
    return lookup_story_id(block.name, context)


def prepare_story_block(block: Story, context: DocsContext) -> SurfaceOptions | None:
    """Decide how a story block renders, before the preview is touched.

    ``docs`` parameters are merged from the project annotations, the story's
    metadata and the story export, in that order; block props override them
    last. Blocks referring to a story by id or name use the example and
    metadata registered under that id, when the page registered one.

    Returns
    -------
    SurfaceOptions or None
        Layout options, or ``None`` when ``docs.disable`` is set.

    Raises
    ------
    MissingInlineAdapterError
        If the story should render inline but no ``prepare_for_inline``
        adapter is configured.
    """
    example, meta = block.of, block.meta or context.page_meta
    if example is None:
        registered = context.registered_example(get_story_id(block, context))
        if registered is not None:
            example, meta = registered
    docs = context.project_annotations.docs_parameters
    for source in (meta, example):
        docs.update(_declared_docs(source))
    if docs.get("disable"):
        return None

    adapter = docs.get(INLINE_ADAPTER_KEY)
    is_inline = block.inline if isinstance(block.inline, bool) else bool(
        docs.get("inline_stories", False)
    )
    if is_inline and adapter is None:
        msg = (
            f"Story '{_block_label(block)}' is set to render inline, but no "
            f"'{INLINE_ADAPTER_KEY}' function is implemented in your docs "
            "configuration!"
        )
        raise MissingInlineAdapterError(msg)

    iframe_height = docs.get("iframe_height", DEFAULT_IFRAME_HEIGHT)
    return SurfaceOptions(
        inline=is_inline,
        height=block.height or (None if is_inline else iframe_height),
        prepare_for_inline=adapter,
    )


def _declared_docs(source: object) -> cabc.Mapping[str, typ.Any]:
    parameters = declared_attribute(source, "parameters")
    if not isinstance(parameters, cabc.Mapping):
        return {}
    docs = parameters.get(DOCS_PARAMETER)
    return docs if isinstance(docs, cabc.Mapping) else {}


def _block_label(block: Story) -> str:
    if block.name:
        return block.name
    if block.id:
        return block.id
    return getattr(block.of, "__name__", repr(block.of))


__all__ = [
    "Block",
    "Markdown",
    "Meta",
    "Story",
    "get_story_id",
    "lookup_story_id",
    "prepare_story_block",
    "story_block_id_from_id",
]
