"""Identifier generation for placed objects, buildings and shafts.

Ids are short prefixed hex strings: ``obj-3f9a0c12d4e5``. The prefix
keeps them readable in documents and logs.
"""

from __future__ import annotations

import uuid


def generate_id(prefix: str = "obj") -> str:
    """Generate a new prefixed identifier."""
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def generate_shaft_id() -> str:
    """Generate the shared id for a vertical shaft group."""
    return generate_id("shaft")


def is_valid_id(value: str) -> bool:
    """Check if a string looks like a generated identifier."""
    if not isinstance(value, str) or "-" not in value:
        return False
    prefix, _, suffix = value.rpartition("-")
    return bool(prefix) and len(suffix) == 12
