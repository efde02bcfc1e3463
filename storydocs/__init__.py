"""Render documentation pages whose live story examples are declared inline.

Stories normally reach a preview runtime through a statically built index of
story files. storydocs lets a docs page declare them on the fly instead: it
assigns placeholder paths, titles and export names, builds a synthetic index
the runtime can consume, and drives each story through one shared, lazily
created preview.

Exports
-------
- ``ExternalDocsContext``: per-page registry and render pipeline.
- ``DocsPage`` / ``DocsPageRenderer``: page tree and its renderer.
- ``app`` / ``main``: the Cyclopts ``storydocs`` command.

Examples
--------
>>> from storydocs import ExternalDocsContext
>>> context = ExternalDocsContext()
>>> context.set_meta({"title": "Button"})
>>> context.add_story(lambda args: "<button>Hi</button>")
'button--export-0'
"""

from __future__ import annotations

from .cli import app, main
from .context import ExternalDocsContext
from .page import DocsPage, DocsPageRenderer

__all__ = ["DocsPage", "DocsPageRenderer", "ExternalDocsContext", "app", "main"]
