r"""Canonical story identifier helpers.

These mirror the identifier rules preview runtimes apply to statically
analysed story files, so ids computed for inline-declared stories line up with
the ids the host would have produced from a file.

Example
-------
>>> from storydocs.csf import story_name_from_export, to_id
>>> to_id("Design System/Button", "primaryLarge")
'design-system-button--primarylarge'
>>> story_name_from_export("primaryLarge")
'Primary Large'
"""

from __future__ import annotations

import re

_SEPARATOR_PATTERN = re.compile(r"[ ’–—―′¿'`~!@#$%^&*()_|+\-=?;:\",.<>{}\[\]\\/]")
_DASH_RUN_PATTERN = re.compile(r"-+")
_WORD_PATTERN = re.compile(r"[A-Z]+(?=[A-Z][a-z])|[A-Z]?[a-z]+|[A-Z]+|[0-9]+")


def sanitize(text: str) -> str:
    """Lowercase ``text`` and collapse punctuation and spaces into single dashes."""
    dashed = _SEPARATOR_PATTERN.sub("-", text.lower())
    return _DASH_RUN_PATTERN.sub("-", dashed).strip("-")


def _sanitize_safe(text: str, part: str) -> str:
    sanitized = sanitize(text)
    if not sanitized:
        msg = f"Invalid {part} '{text}', must include alphanumeric characters"
        raise ValueError(msg)
    return sanitized


def to_id(kind: str, name: str | None = None) -> str:
    """Build the canonical story id for a component title and export name.

    Parameters
    ----------
    kind : str
        Component title (or explicit component id).
    name : str or None, optional
        Export name of the story; when empty only the component part is
        returned.

    Returns
    -------
    str
        ``"<kind>--<name>"`` with both parts sanitized.

    Raises
    ------
    ValueError
        If either part sanitizes to an empty string.
    """
    component = _sanitize_safe(kind, "kind")
    if not name:
        return component
    return f"{component}--{_sanitize_safe(name, 'name')}"


def story_name_from_export(key: str) -> str:
    """Return a start-cased display name for an export key."""
    words = _WORD_PATTERN.findall(key)
    return " ".join(word[0].upper() + word[1:] for word in words)


__all__ = ["sanitize", "story_name_from_export", "to_id"]
