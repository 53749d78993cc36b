"""Bounded-concurrency batch runner.

Work is I/O bound (HTTP fetches, disk, Pillow encode/decode which releases the
GIL), so a thread pool is enough to overlap waits. Each unit returns an
outcome string; outcomes flow back through futures and are aggregated on the
calling thread only.
"""

import logging
from collections import Counter
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Callable, Iterable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

SKIPPED = "skipped"
DERIVED = "derived"
FAILED = "failed"


@dataclass
class BatchReport:
    """Aggregate result of a batch."""
    label: str
    total: int
    processed: int = 0
    outcomes: Counter = field(default_factory=Counter)

    def record(self, outcome: str) -> None:
        self.processed += 1
        self.outcomes[outcome] += 1

    def count(self, outcome: str) -> int:
        return self.outcomes.get(outcome, 0)

    def summary(self) -> str:
        parts = " ".join(f"{key}={value}" for key, value in sorted(self.outcomes.items()))
        return f"{self.label}: {self.processed}/{self.total} {parts}".rstrip()


def run_bounded(
    items: Iterable[T],
    worker: Callable[[T], str],
    limit: int,
    label: str = "items",
    describe: Callable[[T], str] = str,
) -> BatchReport:
    """Run ``worker`` over ``items`` with at most ``limit`` units in flight.

    Returns once every unit has settled. An exception raised by one unit is
    logged and recorded as ``failed``; it never cancels the others.

    Args:
        items: Units of work, dispatched in iteration order
        worker: Callable returning an outcome string for one unit
        limit: Concurrency ceiling (>= 1)
        label: Name used in progress messages
        describe: Formats a unit for log messages

    Returns:
        BatchReport with one recorded outcome per unit
    """
    if limit < 1:
        raise ValueError(f"Concurrency limit must be >= 1, got {limit}")

    items = list(items)
    report = BatchReport(label=label, total=len(items))
    if not items:
        return report

    with ThreadPoolExecutor(max_workers=min(limit, len(items))) as executor:
        futures = {executor.submit(worker, item): item for item in items}

        for future in as_completed(futures):
            item = futures[future]
            try:
                outcome = future.result()
            except Exception as e:
                logger.warning(f"Unexpected error processing {describe(item)}: {e}")
                outcome = FAILED
            report.record(outcome or DERIVED)
            logger.info(f"Processed {label}: {report.processed}/{report.total}")

    return report
