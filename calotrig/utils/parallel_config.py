"""
Worker settings for parallel Layer-1 emulation.
"""

import os
from typing import Optional

DEFAULT_EVENTS_PER_BATCH = 50


def usable_cpu_count() -> int:
    """CPUs this process may run on (affinity mask where the OS exposes one)."""
    try:
        return len(os.sched_getaffinity(0))
    except AttributeError:
        return os.cpu_count() or 1


def get_event_worker_count(n_events: int, events_per_batch: int = DEFAULT_EVENTS_PER_BATCH,
                           max_workers: Optional[int] = None) -> int:
    """One worker per batch of events, capped by max_workers or the usable CPUs."""
    n_batches = -(-n_events // max(1, events_per_batch))
    cap = usable_cpu_count() if max_workers is None else max_workers
    return max(1, min(cap, n_batches))
