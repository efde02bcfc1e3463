"""In-memory stand-in for the story index and CSF module imports.

A preview runtime normally reads an ``index.json`` produced by statically
analysing story files, then imports those files to get at their exports.
:class:`SyntheticModuleIndex` builds both views incrementally as stories are
declared on a page:

* ``story_index`` maps story ids to :class:`IndexEntry` records, and
* ``modules`` maps placeholder import paths to export mappings whose
  ``default`` slot holds the page metadata.

Example
-------
>>> from storydocs.module_index import SyntheticModuleIndex
>>> index = SyntheticModuleIndex()
>>> meta = {"title": "Button"}
>>> def primary(args):
...     return "<button>Primary</button>"
>>> index.register(primary, meta)
'button--export-0'
>>> index.story_index.entries["button--export-0"].import_path
'importPath-0'
>>> index.resolve_module("importPath-0")["export-0"] is primary
True
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import logging
import typing as typ

from ._constants import (
    DEFAULT_EXPORT,
    PLACEHOLDER_STORY_NAME,
    STORY_ENTRY_TYPE,
    STORY_INDEX_VERSION,
)
from .allocator import IdentifierAllocator
from .csf import to_id
from .errors import ModuleNotRegisteredError

logger = logging.getLogger(__name__)

ModuleExports = dict[str, typ.Any]


def declared_attribute(source: object, name: str) -> typ.Any:
    """Read ``name`` from a mapping key or an attribute, returning None if absent."""
    if isinstance(source, cabc.Mapping):
        return source.get(name)
    return getattr(source, name, None)


@dc.dataclass(slots=True, frozen=True)
class IndexEntry:
    """One story row of the synthetic story index.

    Attributes
    ----------
    id : str
        Canonical story id computed from ``title`` and the export name.
    import_path : str
        Placeholder path resolving to the module holding the story export.
    title : str
        Declared component title, or a ``title-<n>`` placeholder.
    name : str
        Display name; inline-declared stories share a fixed placeholder.
    type : str
        Entry kind, always ``"story"``.
    """

    id: str
    import_path: str
    title: str
    name: str = PLACEHOLDER_STORY_NAME
    type: str = STORY_ENTRY_TYPE

    def to_dict(self) -> dict[str, str]:
        return {
            "id": self.id,
            "importPath": self.import_path,
            "title": self.title,
            "name": self.name,
            "type": self.type,
        }


@dc.dataclass(slots=True)
class StoryIndex:
    """Versioned mapping of story ids to index entries."""

    v: int = STORY_INDEX_VERSION
    entries: dict[str, IndexEntry] = dc.field(default_factory=dict)

    def to_dict(self) -> dict[str, typ.Any]:
        return {
            "v": self.v,
            "entries": {key: entry.to_dict() for key, entry in self.entries.items()},
        }


class SyntheticModuleIndex:
    """Register inline stories and expose them the way a file index would."""

    def __init__(self, allocator: IdentifierAllocator | None = None) -> None:
        self.allocator = allocator or IdentifierAllocator()
        self.story_index = StoryIndex()
        self.modules: dict[str, ModuleExports] = {}
        self._story_ids: dict[int, tuple[object, str]] = {}
        self._examples: dict[str, tuple[object, object]] = {}

    def register(self, example: object, meta: object) -> str:
        """Record ``example`` under ``meta`` and return its story id.

        Parameters
        ----------
        example : object
            Story export; keyed by identity.
        meta : object
            Page or component metadata owning the story. Its declared
            ``title`` wins over an allocated placeholder.

        Returns
        -------
        str
            The story id, also remembered for :meth:`story_id_for`.

        Notes
        -----
        Registering under a title and export name that produce an existing id
        overwrites that entry and module slot. Registering the same example
        under different metadata adds a second entry and leaves the first one
        in place.
        """
        import_path = self.allocator.import_path(meta)
        title = declared_attribute(meta, "title") or self.allocator.title(meta)
        export_name = self.allocator.export_name(example)
        story_id = to_id(title, export_name)
        self._story_ids[id(example)] = (example, story_id)
        self._examples[story_id] = (example, meta)

        module = self.modules.get(import_path)
        if module is None:
            module = {DEFAULT_EXPORT: meta}
            self.modules[import_path] = module
        module[export_name] = example

        if story_id in self.story_index.entries:
            logger.debug("story id %s re-registered; last registration wins", story_id)
        self.story_index.entries[story_id] = IndexEntry(
            id=story_id, import_path=import_path, title=title
        )
        return story_id

    def story_id_for(self, example: object) -> str | None:
        """Return the id last computed for ``example``, or None if unregistered."""
        held = self._story_ids.get(id(example))
        return held[1] if held else None

    def example_for(self, story_id: str) -> tuple[object, object] | None:
        """Return the ``(example, meta)`` pair currently owning ``story_id``."""
        return self._examples.get(story_id)

    def resolve_module(self, import_path: str) -> ModuleExports:
        """Return the export mapping behind ``import_path``.

        Raises
        ------
        ModuleNotRegisteredError
            If no story was ever registered under that path.
        """
        try:
            return self.modules[import_path]
        except KeyError as exc:
            msg = f"No synthetic module registered for '{import_path}'"
            raise ModuleNotRegisteredError(msg) from exc

    def __len__(self) -> int:
        return len(self.story_index.entries)


__all__ = [
    "IndexEntry",
    "ModuleExports",
    "StoryIndex",
    "SyntheticModuleIndex",
    "declared_attribute",
]
