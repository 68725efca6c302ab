"""Fetch-and-convert worker pool.

Titles are put on a queue before any worker starts and nothing is added
afterwards; ``workers`` threads drain it. Every failure stays with its title
and ends up in the :class:`RunReport`; it never stops the other workers.
"""

from __future__ import annotations

import logging
import queue
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Iterable, List, Union

from wiki2docx.core.errors import Wiki2DocxError
from wiki2docx.core.models import RunReport
from wiki2docx.export.docx import build_document
from wiki2docx.infra.logging import (
    get_unified_logger,
    log_batch_processing,
    log_context,
    log_error,
    log_task_end,
    log_task_start,
    unified_print,
)
from wiki2docx.wiki.client import WikiClient

_log = get_unified_logger("pool", "worker")


class StageError(Wiki2DocxError):
    """Wraps a per-title error with the pipeline stage it came from."""

    def __init__(self, stage: str, error: Wiki2DocxError) -> None:
        self.stage = stage
        self.error = error
        super().__init__(f"{stage}: {error.reason}")


def process_title(title: str, out_dir: Union[str, Path], client: WikiClient) -> Path:
    """Fetch one article and write it as ``.docx``.

    Raises:
        StageError: wrapping the fetch or build failure.
    """
    try:
        article = client.fetch_article(title)
    except Wiki2DocxError as e:
        raise StageError("fetch", e) from e
    try:
        return build_document(article.title, article.content, out_dir)
    except Wiki2DocxError as e:
        raise StageError("build docx", e) from e


def _drain(
    jobs: "queue.Queue[str]", out_dir: Union[str, Path], client: WikiClient, report: RunReport
) -> None:
    while True:
        try:
            title = jobs.get_nowait()
        except queue.Empty:
            return
        with log_context(title=title):
            try:
                path = process_title(title, out_dir, client)
            except Wiki2DocxError as e:
                report.record_failure(title, e.reason)
                unified_print(f"[FAIL] {title}: {e.reason}", "pool", "worker", logging.WARNING)
            except Exception as e:
                # keep the worker alive; the title is reported like any other failure
                report.record_failure(title, f"unexpected error: {e}")
                log_error("pool", "worker", e, context=f"unexpected failure for {title!r}")
            else:
                unified_print(f"[OK]   {title} -> {path.name}", "pool", "worker")


def run_pool(
    titles: Iterable[str],
    out_dir: Union[str, Path],
    client: WikiClient,
    workers: int = 5,
) -> RunReport:
    """Process every title with ``workers`` threads and return the run report.

    ``workers`` below 1 is clamped to 1. The report is complete once this
    returns; all worker threads have been joined by then.
    """
    items: List[str] = list(titles)
    if workers < 1:
        _log.warning("Worker count %d is invalid, using 1", workers)
        workers = 1
    n_threads = max(1, min(workers, len(items)))

    jobs: "queue.Queue[str]" = queue.Queue(maxsize=max(1, len(items)))
    for t in items:
        jobs.put_nowait(t)

    report = RunReport(total=len(items))
    t0 = time.monotonic()
    log_task_start("pool", "run", {"titles": len(items), "workers": n_threads, "out": str(out_dir)})

    with ThreadPoolExecutor(max_workers=n_threads, thread_name_prefix="w2d-worker") as ex:
        futures = [ex.submit(_drain, jobs, out_dir, client, report) for _ in range(n_threads)]
    for fut in futures:
        # _drain never raises; surface a bug instead of losing it
        fut.result()

    elapsed = time.monotonic() - t0
    log_batch_processing(
        "pool", "run", "fetch_convert", report.total, report.succeeded, report.failed, elapsed
    )
    log_task_end("pool", "run", report.failed == 0, {"elapsed": round(elapsed, 3)})
    return report
