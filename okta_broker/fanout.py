"""Run one call per item concurrently and join the results in input order."""

import concurrent.futures

MAX_WORKERS = 10


def map_ordered(fn, items, max_workers=MAX_WORKERS):
    """Apply *fn* to every item in a thread pool.

    All calls are allowed to settle before anything is returned. Results come
    back in the order of *items*; if any call raised, the error of the first
    failing item (in input order) is raised and no results are returned.
    """
    items = list(items)
    if not items:
        return []

    workers = min(len(items), max_workers)
    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [executor.submit(fn, item) for item in items]
        concurrent.futures.wait(futures)

    return [future.result() for future in futures]
