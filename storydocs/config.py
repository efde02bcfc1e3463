"""Load project annotations (global story configuration) from YAML.

Project annotations are the page-independent defaults every story inherits:
``parameters`` (notably the ``docs`` block controlling inline rendering and
iframe height), ``args`` and ``decorators``. Callables are referenced from
YAML as ``"package.module:attribute"`` strings and imported while loading.

Examples
--------
>>> from pathlib import Path
>>> from storydocs.config import load_project_annotations
>>> annotations = load_project_annotations(Path("storydocs.yaml"))  # doctest: +SKIP
>>> annotations.docs_parameters.get("iframe_height")  # doctest: +SKIP
240
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import importlib
import typing as typ

from ruamel.yaml import YAML

if typ.TYPE_CHECKING:
    from pathlib import Path

DOCS_PARAMETER = "docs"
INLINE_ADAPTER_KEY = "prepare_for_inline"


class ConfigError(ValueError):
    """Raised when the project annotations file is invalid or incomplete."""


@dc.dataclass(slots=True)
class ProjectAnnotations:
    """Global annotations applied beneath every page and story.

    Attributes
    ----------
    parameters : dict[str, Any]
        Nested parameters; ``parameters["docs"]`` drives docs rendering.
    args : dict[str, Any]
        Default args passed to every story function.
    decorators : list[Callable]
        Story decorators applied outermost-last, after page and story ones.
    """

    parameters: dict[str, typ.Any] = dc.field(default_factory=dict)
    args: dict[str, typ.Any] = dc.field(default_factory=dict)
    decorators: list[cabc.Callable[..., str]] = dc.field(default_factory=list)

    @property
    def docs_parameters(self) -> dict[str, typ.Any]:
        docs = self.parameters.get(DOCS_PARAMETER)
        return dict(docs) if isinstance(docs, cabc.Mapping) else {}

    @classmethod
    def from_mapping(cls, payload: cabc.Mapping[str, typ.Any]) -> ProjectAnnotations:
        """Build annotations from an already-parsed mapping.

        Raises
        ------
        ConfigError
            If a section has the wrong shape or a callable reference cannot be
            imported.
        """
        parameters = _mapping_section(payload, "parameters")
        docs = parameters.get(DOCS_PARAMETER)
        if docs is not None:
            if not isinstance(docs, cabc.Mapping):
                msg = "'parameters.docs' must be a mapping."
                raise ConfigError(msg)
            docs = dict(docs)
            adapter = docs.get(INLINE_ADAPTER_KEY)
            if isinstance(adapter, str):
                docs[INLINE_ADAPTER_KEY] = _resolve_callable(adapter)
            parameters[DOCS_PARAMETER] = docs

        decorators_raw = payload.get("decorators") or []
        if not isinstance(decorators_raw, list):
            msg = "'decorators' must be a list."
            raise ConfigError(msg)
        decorators = [
            _resolve_callable(item) if isinstance(item, str) else item
            for item in decorators_raw
        ]
        for decorator in decorators:
            if not callable(decorator):
                msg = f"Decorator {decorator!r} is not callable."
                raise ConfigError(msg)

        return cls(
            parameters=parameters,
            args=_mapping_section(payload, "args"),
            decorators=decorators,
        )


def load_project_annotations(path: Path) -> ProjectAnnotations:
    """Load the YAML file describing global story annotations.

    Parameters
    ----------
    path : Path
        Filesystem path to the YAML file (for example, ``storydocs.yaml``).

    Returns
    -------
    ProjectAnnotations
        Parsed annotations with callable references already imported.

    Raises
    ------
    FileNotFoundError
        If the configuration file does not exist at ``path``.
    ConfigError
        If the top-level structure is not a mapping or a section is invalid.
    YAMLError
        If the YAML content cannot be parsed by the underlying loader.
    """
    if not path.exists():
        msg = f"Configuration file '{path}' not found."
        raise FileNotFoundError(msg)

    loader = YAML(typ="safe")
    loader.version = (1, 2)
    with path.open("r", encoding="utf-8") as handle:
        loaded = loader.load(handle) or {}
    if not isinstance(loaded, dict):
        msg = "Top-level YAML structure must be a mapping."
        raise ConfigError(msg)
    return ProjectAnnotations.from_mapping(loaded)


def _mapping_section(
    payload: cabc.Mapping[str, typ.Any], key: str
) -> dict[str, typ.Any]:
    """Return a copy of ``payload[key]`` or an empty dict, rejecting non-mappings."""
    value = payload.get(key) or {}
    if not isinstance(value, cabc.Mapping):
        msg = f"'{key}' must be a mapping."
        raise ConfigError(msg)
    return dict(value)


def _resolve_callable(reference: str) -> cabc.Callable[..., typ.Any]:
    target = resolve_reference(reference)
    if not callable(target):
        msg = f"'{reference}' is not callable."
        raise ConfigError(msg)
    return target


def resolve_reference(reference: str) -> typ.Any:
    """Import ``"module:attribute"`` and return the (possibly dotted) attribute.

    Raises
    ------
    ConfigError
        If the reference is malformed, the module cannot be imported or the
        attribute does not exist.
    """
    module_name, sep, attribute = reference.partition(":")
    if not sep or not module_name or not attribute:
        msg = f"Reference '{reference}' must look like 'module:attribute'."
        raise ConfigError(msg)
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        msg = f"Cannot import module '{module_name}' for '{reference}'."
        raise ConfigError(msg) from exc
    target: typ.Any = module
    for part in attribute.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as exc:
            msg = f"'{reference}' does not resolve to an attribute."
            raise ConfigError(msg) from exc
    return target


__all__ = [
    "ConfigError",
    "ProjectAnnotations",
    "load_project_annotations",
    "resolve_reference",
]
