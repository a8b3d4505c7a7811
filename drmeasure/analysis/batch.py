"""Folder-level analysis over many files."""
from __future__ import annotations

import logging
import time
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, Sequence

from drmeasure.analysis.track import analyze_file_safe
from drmeasure.io.discovery import display_name
from drmeasure.types import TrackOutcome

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchItem:
    index: int
    outcome: TrackOutcome
    elapsed: float


def _analysis_worker(args: tuple[str, str]) -> tuple[TrackOutcome, float]:
    """Worker for parallel analysis."""
    path, name = args
    t0 = time.perf_counter()
    outcome = analyze_file_safe(path, display_name=name)
    return outcome, time.perf_counter() - t0


def iter_analyses(
    paths: Sequence[Path],
    *,
    root: Path | None = None,
    workers: int = 1,
) -> Iterator[BatchItem]:
    """
    Analyze files one by one, or with a process pool when ``workers > 1``.

    Items are yielded as they finish, so with a pool they arrive in
    completion order; ``index`` is the position in ``paths``.
    """
    jobs = [(str(p), display_name(p, root)) for p in paths]
    max_workers = min(max(1, int(workers)), max(1, len(jobs)))
    if max_workers == 1:
        for i, job in enumerate(jobs):
            outcome, elapsed = _analysis_worker(job)
            yield BatchItem(index=i, outcome=outcome, elapsed=elapsed)
        return

    logger.info("Analyzing %d file(s) with %d workers", len(jobs), max_workers)
    with ProcessPoolExecutor(max_workers=max_workers) as ex:
        futures = {ex.submit(_analysis_worker, job): i for i, job in enumerate(jobs)}
        for fut in as_completed(futures):
            i = futures[fut]
            outcome, elapsed = fut.result()
            yield BatchItem(index=i, outcome=outcome, elapsed=elapsed)


def collect_outcomes(items: Iterable[BatchItem]) -> list[TrackOutcome]:
    """Outcomes in input path order regardless of completion order."""
    return [item.outcome for item in sorted(items, key=lambda it: it.index)]


def analyze_paths(
    paths: Sequence[Path],
    *,
    root: Path | None = None,
    workers: int = 1,
) -> list[TrackOutcome]:
    return collect_outcomes(iter_analyses(paths, root=root, workers=workers))
