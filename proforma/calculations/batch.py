"""Evaluate many proformas at once (portfolio recompute)."""

import concurrent.futures
import multiprocessing
from typing import Callable, List, Optional, Sequence

from ..models.config import EngineConfig
from ..models.inputs import ProformaInputs
from .aggregate import ProformaMetrics, aggregate


def aggregate_many(
    inputs_list: Sequence[ProformaInputs],
    config: Optional[EngineConfig] = None,
    parallel: bool = True,
    max_workers: Optional[int] = None,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> List[ProformaMetrics]:
    """Run ``aggregate`` over independent proformas.

    Each computation owns its own series and trace context, so the thread
    pool needs no locking.

    Args:
        inputs_list: Proformas to evaluate.
        config: Engine settings shared by every run.
        parallel: Use a thread pool when there is more than one proforma.
        max_workers: Pool size (default: CPU count, at most 8).
        progress_callback: Optional callback(completed, total).

    Returns:
        Metrics in the same order as ``inputs_list``.
    """
    total = len(inputs_list)
    results: List[Optional[ProformaMetrics]] = [None] * total

    if parallel and total > 1:
        max_workers = max_workers or min(multiprocessing.cpu_count(), 8)

        with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = {
                executor.submit(aggregate, inputs, config): index
                for index, inputs in enumerate(inputs_list)
            }

            for completed, future in enumerate(concurrent.futures.as_completed(futures), start=1):
                results[futures[future]] = future.result()
                if progress_callback:
                    progress_callback(completed, total)
    else:
        for index, inputs in enumerate(inputs_list):
            results[index] = aggregate(inputs, config)
            if progress_callback:
                progress_callback(index + 1, total)

    return results
