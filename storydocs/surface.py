"""Render targets handed to the host preview runtime."""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import typing as typ

InlineAdapter = cabc.Callable[[cabc.Callable[[], str], typ.Any], str]


@dc.dataclass(slots=True)
class SurfaceOptions:
    """Layout decisions taken while preparing a story block.

    Attributes
    ----------
    inline : bool
        Render straight into the page instead of an isolated iframe.
    height : str | int | None
        Iframe height (pixels when an int); ``None`` for inline stories.
    prepare_for_inline : InlineAdapter | None
        Adapter turning a bound story function into inline markup.
    """

    inline: bool = False
    height: str | int | None = None
    prepare_for_inline: InlineAdapter | None = None


@dc.dataclass(slots=True)
class RenderSurface:
    """Mutable slot a host renders one story into."""

    block_id: str | None = None
    options: SurfaceOptions = dc.field(default_factory=SurfaceOptions)
    html: str | None = None

    def mount(self, html: str) -> None:
        self.html = html

    @property
    def mounted(self) -> bool:
        return self.html is not None


__all__ = ["InlineAdapter", "RenderSurface", "SurfaceOptions"]
