"""Cyclopts CLI entrypoint for rendering storydocs pages.

The ``storydocs`` console script imports docs pages declared in Python
(``package.module:attribute`` references to :class:`~storydocs.page.DocsPage`
objects), renders their inline-declared stories through one shared preview
runtime and writes an HTML file per page. ``storydocs index`` prints the
synthetic story index a page would hand to the preview runtime.

Examples
--------
Render two pages into ``public/``:

>>> from storydocs.cli import app
>>> app.run(
...     ["render", "docs.button:page", "docs.card:page", "--output-dir", "public"]
... )  # doctest: +SKIP

Inspect the story ids of one page:

>>> app.run(["index", "docs.button:page"])  # doctest: +SKIP
"""

from __future__ import annotations

import logging
import typing as typ
from pathlib import Path

import cyclopts
import msgspec.json as msgspec_json
from cyclopts import App, Parameter

from .config import ConfigError, ProjectAnnotations, load_project_annotations, resolve_reference
from .csf import sanitize
from .page import DocsPage, DocsPageRenderer, render_pages

DEFAULT_CONFIG = Path("storydocs.yaml")
DEFAULT_OUTPUT_DIR = Path("public")

app = App(name="storydocs", config=cyclopts.config.Env("STORYDOCS_", command=False))  # type: ignore[unknown-argument]


def _format_path(path: Path) -> str:
    """Return a cwd-relative path when possible, otherwise the absolute path."""
    if path.is_absolute():
        try:
            return str(path.relative_to(Path.cwd()))
        except ValueError:  # pragma: no cover - fallback for different roots
            return str(path)
    return str(path)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _load_annotations(config: Path) -> ProjectAnnotations:
    """Load project annotations, treating a missing default file as empty."""
    if config == DEFAULT_CONFIG and not config.exists():
        return ProjectAnnotations()
    return load_project_annotations(config)


def _load_page(reference: str) -> DocsPage:
    page = resolve_reference(reference)
    if not isinstance(page, DocsPage):
        msg = f"'{reference}' does not refer to a DocsPage."
        raise ConfigError(msg)
    return page


@app.command(help="Render docs pages with their inline stories to HTML.")
def render(
    *pages: typ.Annotated[str, Parameter(help="Page references (module:attribute)")],
    config: typ.Annotated[
        Path, Parameter(help="Path to project annotations YAML")
    ] = DEFAULT_CONFIG,
    output_dir: typ.Annotated[
        Path, Parameter(help="Folder receiving the rendered pages")
    ] = DEFAULT_OUTPUT_DIR,
    verbose: typ.Annotated[bool, Parameter(help="Enable debug logging")] = False,
) -> None:
    """Render each referenced page and write ``<output_dir>/<slug>.html``.

    Parameters
    ----------
    pages : str
        One or more ``module:attribute`` references to :class:`DocsPage`
        objects.
    config : Path, optional
        Project annotations file; a missing default ``storydocs.yaml`` is
        treated as empty annotations.
    output_dir : Path, optional
        Directory for the HTML files; created when missing.
    verbose : bool, optional
        Log registry and preview activity at debug level.

    Raises
    ------
    ValueError
        If no page reference is supplied.
    """
    _configure_logging(verbose)
    if not pages:
        msg = "At least one page reference is required."
        raise ValueError(msg)
    annotations = _load_annotations(config)
    docs_pages = [_load_page(reference) for reference in pages]

    output_dir.mkdir(parents=True, exist_ok=True)
    for rendered in render_pages(docs_pages, annotations):
        output_path = output_dir / f"{sanitize(rendered.title) or 'page'}.html"
        output_path.write_text(rendered.html, encoding="utf-8")
        print(f"wrote {_format_path(output_path)}")


@app.command(help="Print the synthetic story index of a docs page as JSON.")
def index(
    page: typ.Annotated[str, Parameter(help="Page reference (module:attribute)")],
    *,
    config: typ.Annotated[
        Path, Parameter(help="Path to project annotations YAML")
    ] = DEFAULT_CONFIG,
) -> None:
    """Register the page's stories without rendering and print the index."""
    renderer = DocsPageRenderer(_load_page(page), _load_annotations(config))
    renderer.plan()
    payload = renderer.context.index.story_index.to_dict()
    print(msgspec_json.format(msgspec_json.encode(payload), indent=2).decode("utf-8"))


def main() -> None:
    """Invoke the Cyclopts application that powers the ``storydocs`` command."""
    app()


if __name__ == "__main__":  # pragma: no cover - manual invocation helper
    main()
