# kang/_internal/workers.py

"""
Internal helper to run independent chunk jobs on a thread pool.

Results are collected in submission order, each thread owns the state built by
`make_state` (a backend plus its scratch buffers), and the first failure
cancels every chunk that has not started yet.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, List, Sequence, TypeVar

T = TypeVar("T")
R = TypeVar("R")

def run_ordered(
    items: Sequence[T],
    job: Callable[[Any, T], R],
    make_state: Callable[[], Any],
    release_state: Callable[[Any], None],
    workers: int,
) -> List[R]:
    """
    Runs `job(state, item)` for every item and returns the results in order.

    Args:
        items: The work units, e.g. chunk spans.
        job: Called with the calling thread's state and one item.
        make_state: Builds the per-thread state on first use.
        release_state: Called once per created state when the pool is done.
        workers: Maximum number of threads.

    Raises:
        The first exception raised by a job, in item order.
    """
    local = threading.local()
    created: List[Any] = []
    lock = threading.Lock()

    def _run(item: T) -> R:
        state = getattr(local, "state", None)
        if state is None:
            state = make_state()
            local.state = state
            with lock:
                created.append(state)
        return job(state, item)

    pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="kang-chunk")
    try:
        futures = [pool.submit(_run, item) for item in items]
        results: List[R] = []
        try:
            for future in futures:
                results.append(future.result())
        except BaseException:
            for future in futures:
                future.cancel()
            raise
        return results
    finally:
        pool.shutdown(wait=True, cancel_futures=True)
        for state in created:
            release_state(state)
