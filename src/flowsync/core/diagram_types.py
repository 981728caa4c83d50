"""
Diagram type detection.

Classifies DSL text by the leading token of its first significant line
(blank lines and `%%` comments do not count).
"""

import re
from typing import Optional

from .models import DiagramType, FLOW_DIAGRAM_TYPES

COMMENT_PREFIX = "%%"

_LEADING_TOKEN = re.compile(r"^([A-Za-z0-9_-]+)")

_TYPE_LOOKUP: dict[str, DiagramType] = {t.value.lower(): t for t in DiagramType}


def is_significant(line: str) -> bool:
    """True for a stripped line that is neither blank nor a comment."""
    return bool(line) and not line.startswith(COMMENT_PREFIX)


def first_significant_line(text: str) -> Optional[str]:
    """Return the first non-blank, non-comment line, stripped."""
    for raw in text.splitlines():
        line = raw.strip()
        if is_significant(line):
            return line
    return None


def detect_diagram_type(text: str) -> Optional[DiagramType]:
    """
    Detect the diagram kind named by the first significant line.

    Returns None when there is no such line or its leading token is not a
    known diagram kind. The lookup is case-insensitive.
    """
    line = first_significant_line(text)
    if line is None:
        return None

    match = _LEADING_TOKEN.match(line)
    if not match:
        return None

    return _TYPE_LOOKUP.get(match.group(1).lower())


def is_flow_diagram_type(kind: Optional[DiagramType]) -> bool:
    """True if `kind` is one of the editable flow-diagram variants."""
    return kind in FLOW_DIAGRAM_TYPES
