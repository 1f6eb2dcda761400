"""Human-readable secondary identifiers used for export filenames.

`generate_smart_id` is pure: the same `(content, item_id)` always yields the same
value, so it is recomputed at export time instead of stored.
"""

from __future__ import annotations

import re
import uuid

_NON_SLUG = re.compile(r"[^a-z0-9\s]")
_PREFIXES = {"t_": "t", "conv_": "conv", "msg_": "msg"}

MAX_SLUG_LENGTH = 30
SLUG_WORDS = 4
SUFFIX_LENGTH = 4


def new_id(prefix: str) -> str:
    """Primary identifier: `{prefix}_{uuid4}`."""
    return f"{prefix}_{uuid.uuid4()}"


def slugify(content: str) -> str:
    words = _NON_SLUG.sub("", content.lower()).strip().split()
    slug = "-".join(words[:SLUG_WORDS])[:MAX_SLUG_LENGTH]
    return slug or "untitled"


def split_id(item_id: str) -> tuple[str, str]:
    """Return `(smart prefix, random part)` for a primary identifier."""
    for raw, short in _PREFIXES.items():
        if item_id.startswith(raw):
            return short, item_id[len(raw) :]
    return "t", item_id


def generate_smart_id(content: str, item_id: str) -> str:
    prefix, random_part = split_id(item_id)
    suffix = random_part.replace("-", "")[-SUFFIX_LENGTH:]
    return f"{prefix}-{slugify(content)}-{suffix}"


__all__ = ["generate_smart_id", "new_id", "slugify", "split_id"]
