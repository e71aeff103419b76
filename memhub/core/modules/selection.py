"""Content-based choice of a module for memories stored without one."""

import re
from typing import Any

_RULES: list[tuple[str, re.Pattern]] = [
    ("technical", re.compile(r"\b(function|class|import|const|def|error|exception|bug|api)\b")),
    ("work", re.compile(r"\b(meeting|project|deadline|task|client|sprint)s?\b")),
    ("learning", re.compile(r"\b(learn|learned|learning|study|studied|course|lesson|tutorial)\b")),
    ("communication", re.compile(r"\b(email|message|call|chat|replied|texted)s?\b")),
    ("creative", re.compile(r"\b(idea|design|art|story|poem|sketch)s?\b")),
]

DEFAULT_MODULE = "personal"


def determine_module(content: str, metadata: dict[str, Any] | None = None) -> str:
    """
    Pick a module id for content.

    An explicit ``module_id`` in metadata wins; otherwise the first keyword
    rule that matches decides, falling back to ``personal``.
    """
    if metadata and metadata.get("module_id"):
        return str(metadata["module_id"])

    lowered = content.lower()
    for module_id, pattern in _RULES:
        if pattern.search(lowered):
            return module_id
    return DEFAULT_MODULE
