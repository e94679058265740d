from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional

from infra.errors import WorkflowError, normalize_error

ProgressCallback = Callable[[int, int], None]


@dataclass
class BatchOutcome:
    """Per-page results of a batch; one page failing never aborts the rest."""
    total: int
    results: Dict[int, Any] = field(default_factory=dict)
    failed: Dict[int, WorkflowError] = field(default_factory=dict)
    discarded: bool = False

    @property
    def completed(self) -> List[int]:
        return sorted(self.results)

    @property
    def status(self) -> str:
        if self.discarded:
            return "discarded"
        if len(self.results) == self.total:
            return "success"
        if self.results:
            return "partial"
        return "failed"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "total": self.total,
            "completed": len(self.results),
            "failed": {i: e.description for i, e in sorted(self.failed.items())},
        }


def run_page_batch(
    indices: Iterable[int],
    work: Callable[[int], Any],
    max_workers: int,
    stage: str,
    progress: Optional[ProgressCallback] = None,
    logger=None,
) -> BatchOutcome:
    """Run `work(index)` over pages with bounded concurrency.

    `progress(done, total)` fires once per page in completion order, which
    is not page order.
    """
    indices = list(indices)
    outcome = BatchOutcome(total=len(indices))
    if not indices:
        return outcome

    done = 0
    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(indices)))) as executor:
        futures = {executor.submit(work, index): index for index in indices}

        for future in as_completed(futures):
            index = futures[future]
            try:
                outcome.results[index] = future.result()
            except Exception as e:
                error = normalize_error(e, stage=stage, page=index)
                outcome.failed[index] = error
                if logger:
                    logger.error(f"Page {index + 1} failed: {error.description}", page=index, error=error.reason)

            done += 1
            if progress:
                progress(done, len(indices))

    return outcome
