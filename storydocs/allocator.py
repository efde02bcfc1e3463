"""Identity-keyed placeholder tokens for inline-declared stories.

Stories declared on the fly have no file path, title or export name of their
own. :class:`IdentifierAllocator` hands out a stand-in for each of those the
first time an object is seen and keeps returning it for the lifetime of the
page.

Example
-------
>>> from storydocs.allocator import IdentifierAllocator, TokenSeries
>>> allocator = IdentifierAllocator()
>>> meta = {"component": "Button"}
>>> allocator.allocate(meta, TokenSeries.IMPORT_PATH)
'importPath-0'
>>> allocator.allocate(meta, TokenSeries.IMPORT_PATH)
'importPath-0'
>>> allocator.allocate({"component": "Button"}, TokenSeries.IMPORT_PATH)
'importPath-1'
"""

from __future__ import annotations

import enum
import logging

from ._constants import EXPORT_NAME_PREFIX, IMPORT_PATH_PREFIX, TITLE_PREFIX

logger = logging.getLogger(__name__)


class TokenSeries(enum.StrEnum):
    """Independent counter series, valued by their token prefix."""

    IMPORT_PATH = IMPORT_PATH_PREFIX
    TITLE = TITLE_PREFIX
    EXPORT_NAME = EXPORT_NAME_PREFIX


class IdentifierAllocator:
    """Assign ``"<prefix>-<n>"`` tokens to objects by identity.

    Keys are compared with ``id()`` rather than equality, so two structurally
    equal mappings receive distinct tokens and unhashable objects are
    accepted. The allocator holds a reference to every key it has seen; an
    identity therefore cannot be recycled by the garbage collector while the
    allocator is alive.
    """

    def __init__(self) -> None:
        self._counters: dict[TokenSeries, int] = dict.fromkeys(TokenSeries, 0)
        self._tokens: dict[TokenSeries, dict[int, tuple[object, str]]] = {
            series: {} for series in TokenSeries
        }

    def allocate(self, key: object, series: TokenSeries) -> str:
        """Return the token for ``key`` in ``series``, allocating it on first sight.

        Parameters
        ----------
        key : object
            Any object; only its identity matters.
        series : TokenSeries
            Counter series to draw from.

        Returns
        -------
        str
            The memoized token, for example ``"export-3"``.
        """
        cache = self._tokens[series]
        held = cache.get(id(key))
        if held is None:
            token = f"{series.value}-{self._counters[series]}"
            self._counters[series] += 1
            held = (key, token)
            cache[id(key)] = held
            logger.debug("allocated %s for %r", token, key)
        return held[1]

    def import_path(self, meta: object) -> str:
        return self.allocate(meta, TokenSeries.IMPORT_PATH)

    def title(self, meta: object) -> str:
        return self.allocate(meta, TokenSeries.TITLE)

    def export_name(self, example: object) -> str:
        return self.allocate(example, TokenSeries.EXPORT_NAME)


__all__ = ["IdentifierAllocator", "TokenSeries"]
