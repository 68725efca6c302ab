from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Union

from wiki2docx.core.errors import TitleSourceError, Wiki2DocxError
from wiki2docx.infra.logging import get_unified_logger
from wiki2docx.wiki.client import WikiClient

_log = get_unified_logger("wiki", "titles")


def read_titles(path: Union[str, Path]) -> List[str]:
    """Read one title per line; blank lines and ``#`` comments are skipped.

    Order and duplicates are preserved.
    """
    p = Path(path)
    titles: List[str] = []
    try:
        with p.open("r", encoding="utf-8") as f:
            for line in f:
                s = line.strip()
                if not s or s.startswith("#"):
                    continue
                titles.append(s)
    except OSError as e:
        raise TitleSourceError(f"open file: {e}") from e
    except UnicodeDecodeError as e:
        raise TitleSourceError(f"read file {p}: {e}") from e
    return titles


def collect_titles(
    client: WikiClient, input_file: Optional[Union[str, Path]] = None, random_n: int = 1
) -> List[str]:
    """Titles from ``input_file`` when given, else ``random_n`` random ones.

    Raises:
        TitleSourceError: when no title could be produced.
    """
    if input_file:
        titles = read_titles(input_file)
        _log.info("Read %d title(s) from %s", len(titles), input_file)
    else:
        try:
            titles = client.random_titles(random_n)
        except Wiki2DocxError as e:
            raise TitleSourceError(f"random titles: {e.reason}") from e
        _log.info("Collected %d random title(s)", len(titles))
    if not titles:
        raise TitleSourceError("no article titles found; use --input or --random")
    return titles
