"""Utilities for rendering prose blocks and story source snippets."""

from __future__ import annotations

import inspect
import re
import textwrap

from markdown import Markdown
from pygments import highlight
from pygments.formatters.html import HtmlFormatter
from pygments.lexers import PythonLexer

FENCED_INDENT_PATTERN = re.compile(r"^[ ]{1,3}([`~]{3,})", re.MULTILINE)


class HtmlContentRenderer:
    """Render markdown and story sources with consistent styling."""

    def __init__(self, pygments_style: str = "monokai") -> None:
        """Initialize a renderer with the Pygments style used for code.

        Parameters
        ----------
        pygments_style : str, optional
            Name of the Pygments style used for syntax highlighting. Defaults to
            ``"monokai"``.
        """
        self.pygments_style = pygments_style
        self._formatter = HtmlFormatter(style=pygments_style, cssclass="codehilite")

    @property
    def stylesheet(self) -> str:
        """Return the CSS used for highlighted code blocks."""
        return self._formatter.get_style_defs(".codehilite")

    def markdown(self, text: str) -> str:
        """Render markdown prose into HTML; blank input yields an empty string."""
        normalized = FENCED_INDENT_PATTERN.sub(r"\1", textwrap.dedent(text))
        if not normalized.strip():
            return ""
        md = Markdown(
            extensions=["fenced_code", "codehilite", "tables", "sane_lists"],
            extension_configs={
                "codehilite": {
                    "linenums": False,
                    "guess_lang": False,
                    "css_class": "codehilite",
                    "pygments_style": self.pygments_style,
                }
            },
        )
        return md.convert(normalized)

    def story_source(self, example: object) -> str | None:
        """Return highlighted Python source for ``example``, if it can be found."""
        try:
            source = inspect.getsource(example)  # type: ignore[arg-type]
        except (OSError, TypeError):
            return None
        return highlight(textwrap.dedent(source), PythonLexer(), self._formatter)


__all__ = ["HtmlContentRenderer"]
