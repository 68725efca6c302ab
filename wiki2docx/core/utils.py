from __future__ import annotations

import re
from pathlib import Path
from typing import Union

_UNSAFE_RUN = re.compile(r'[\\/:*?"<>| ]+')
MAX_STEM_LENGTH = 200
FALLBACK_STEM = "untitled"


def safe_filename(title: str, max_length: int = MAX_STEM_LENGTH) -> str:
    """Turn an article title into a file stem without path or shell specials.

    Each run of ``\\ / : * ? " < > |`` or space becomes one underscore, edge
    underscores are dropped and the stem is cut to ``max_length`` characters.
    """
    s = _UNSAFE_RUN.sub("_", title or "").strip("_")
    if len(s) > max_length:
        # a cut can expose a trailing underscore; strip it to stay idempotent
        s = s[:max_length].rstrip("_")
    return s or FALLBACK_STEM


def ensure_directory(path: Union[str, Path]) -> Path:
    p = Path(path)
    p.mkdir(parents=True, exist_ok=True)
    return p
