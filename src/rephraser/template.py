"""Prompt template rendering.

Templates use ``{name}`` placeholders. Rendering is a single literal pass:
bound values are inserted as-is and never re-scanned, and placeholders
without a binding are left in place so templates written for newer
variables keep working.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from rephraser.errors import InternalError, TemplateError

if TYPE_CHECKING:
    from collections.abc import Mapping

TEXT_PLACEHOLDER = "text"

_PLACEHOLDER_RE = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")


def placeholders(template: str) -> list[str]:
    """Return placeholder names in first-seen order, without duplicates."""
    seen: dict[str, None] = {}
    for match in _PLACEHOLDER_RE.finditer(template):
        seen.setdefault(match.group(1), None)
    return list(seen)


def render(template: str, bindings: Mapping[str, str]) -> str:
    """Substitute ``{name}`` placeholders in *template* with *bindings*.

    Args:
        template: Template text with zero or more placeholders.
        bindings: Placeholder name to replacement text.

    Returns:
        The rendered string.

    Raises:
        TemplateError: If the template or a binding value is not a string.
        InternalError: If the template uses ``{text}`` but no ``text`` binding
            was supplied.
    """
    if not isinstance(template, str):
        raise TemplateError(
            f"Template must be a string, got {type(template).__name__}"
        )
    for key, value in bindings.items():
        if not isinstance(value, str):
            raise TemplateError(
                f"Binding {key!r} must be a string, got {type(value).__name__}",
                hint="Convert values to text before rendering.",
            )

    names = placeholders(template)
    if TEXT_PLACEHOLDER in names and TEXT_PLACEHOLDER not in bindings:
        raise InternalError(
            "Template references {text} but no text binding was supplied",
            hint="This is a Rephraser internal error. Please report it.",
        )

    def _substitute(match: re.Match[str]) -> str:
        value = bindings.get(match.group(1))
        return match.group(0) if value is None else value

    return _PLACEHOLDER_RE.sub(_substitute, template)
