"""
Local parallel execution of planned splits.
"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Callable, List, Optional

from tablesource.core.logging import LoggerMixin
from .models import GenericRecord, PlannedSplit
from .orchestrator import ExtractionOrchestrator


RecordConsumer = Callable[[GenericRecord], None]


@dataclass
class SplitResult:
    """Outcome of reading one split."""
    split: PlannedSplit
    rows: int = 0
    duration: float = 0.0
    error: Optional[BaseException] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


class LocalSplitRunner(LoggerMixin):
    """
    Runs every planned split of a ready orchestrator on a thread pool.

    Each split is read by its own reader on its own connection. The consumer
    is called under a lock, one record at a time. A failing split is reported
    in its SplitResult with the rows it emitted before failing; sibling splits
    keep running.
    """

    def __init__(self, orchestrator: ExtractionOrchestrator, max_workers: int = 4):
        if max_workers <= 0:
            raise ValueError("max_workers must be positive")
        self.orchestrator = orchestrator
        self.max_workers = max_workers
        self._consumer_lock = threading.Lock()

    def run(self, consumer: RecordConsumer,
            on_complete: Optional[Callable[[SplitResult], None]] = None) -> List[SplitResult]:
        """
        Read all splits.

        Args:
            consumer: Called with every record
            on_complete: Called with each SplitResult as its split finishes

        Returns:
            One result per split, in plan order
        """
        splits = self.orchestrator.splits
        results: List[Optional[SplitResult]] = [None] * len(splits)

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            future_to_index = {
                executor.submit(self._run_split, planned, consumer): i
                for i, planned in enumerate(splits)
            }
            for future in as_completed(future_to_index):
                result = future.result()
                results[future_to_index[future]] = result
                if on_complete:
                    on_complete(result)

        failed = sum(1 for r in results if not r.succeeded)
        if failed:
            self.logger.warning(f"{failed} of {len(splits)} splits failed")
        else:
            self.logger.info(f"All {len(splits)} splits read")
        return results

    def _run_split(self, planned: PlannedSplit, consumer: RecordConsumer) -> SplitResult:
        result = SplitResult(split=planned)
        start_time = time.time()
        try:
            for record in self.orchestrator.read_split(planned):
                with self._consumer_lock:
                    consumer(record)
                result.rows += 1
        except Exception as e:
            self.logger.error(
                f"Split {planned.split.index} of {planned.table.qualified_name} failed "
                f"after {result.rows} rows: {e}"
            )
            result.error = e
        result.duration = time.time() - start_time
        return result
