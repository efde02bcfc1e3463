"""Unit tests for loading project annotations from YAML."""

from __future__ import annotations

import html
import textwrap
import typing as typ

import pytest

from storydocs.config import (
    ConfigError,
    ProjectAnnotations,
    load_project_annotations,
    resolve_reference,
)

if typ.TYPE_CHECKING:
    from pathlib import Path


def _write(tmp_path: Path, body: str) -> Path:
    path = tmp_path / "storydocs.yaml"
    path.write_text(textwrap.dedent(body).strip() + "\n", encoding="utf-8")
    return path


def test_load_resolves_callables(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        """
        parameters:
          docs:
            inline_stories: true
            iframe_height: 240
            prepare_for_inline: html:escape
          layout: centered
        args:
          size: md
        decorators:
          - textwrap:dedent
        """,
    )
    annotations = load_project_annotations(path)

    assert annotations.docs_parameters == {
        "inline_stories": True,
        "iframe_height": 240,
        "prepare_for_inline": html.escape,
    }
    assert annotations.parameters["layout"] == "centered"
    assert annotations.args == {"size": "md"}
    assert annotations.decorators == [textwrap.dedent]


def test_empty_file_gives_empty_annotations(tmp_path: Path) -> None:
    path = _write(tmp_path, "")
    assert load_project_annotations(path) == ProjectAnnotations()


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_project_annotations(tmp_path / "absent.yaml")


@pytest.mark.parametrize(
    "body",
    [
        "- just\n- a list",
        "parameters: [1, 2]",
        "parameters:\n  docs: nope",
        "decorators: textwrap:dedent",
        "decorators:\n  - 42",
        "parameters:\n  docs:\n    prepare_for_inline: string:ascii_letters",
        "parameters:\n  docs:\n    prepare_for_inline: no_such_module_xyz:thing",
    ],
)
def test_invalid_structures_raise_config_error(tmp_path: Path, body: str) -> None:
    path = _write(tmp_path, body)
    with pytest.raises(ConfigError):
        load_project_annotations(path)


def test_resolve_reference_walks_dotted_attributes() -> None:
    assert resolve_reference("os:path.join") is __import__("os").path.join
    with pytest.raises(ConfigError, match="module:attribute"):
        resolve_reference("os.path")
    with pytest.raises(ConfigError, match="does not resolve"):
        resolve_reference("os:definitely_missing")
