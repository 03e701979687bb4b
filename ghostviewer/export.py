"""
Orphan report export.
"""

import json
import re
from typing import Iterable

from .models import Orphan


TOOL_NAME = "ghost-viewer"


def _slug(value: str) -> str:
    return re.sub(r"[^A-Za-z0-9._-]+", "_", value) or "all"


def orphans_filename(app: str, stage: str) -> str:
    """
    Download filename for an orphan export.

    Returns:
        "ghost-viewer-orphans-<app>-<stage>.json"; path separators and
        wildcards in app/stage are replaced so the name stays a single file
    """
    return f"{TOOL_NAME}-orphans-{_slug(app)}-{_slug(stage)}.json"


def export_orphans(orphans: Iterable[Orphan]) -> str:
    """Serialize orphans as an indented JSON array."""
    return json.dumps([orphan.to_dict() for orphan in orphans], indent=2)
