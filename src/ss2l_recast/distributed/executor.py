"""
Parallel execution helpers.

Events are independent, so a run can be split into chunks processed by
separate workers. Each worker gets its own random stream spawned from a
single seed, which keeps efficiency draws reproducible per worker, and
the per-chunk results are merged once at the end.

The Dask helpers hide the details of starting a local Dask cluster and
submitting per-chunk tasks.
"""

from functools import reduce
import operator

import numpy as np
from dask.distributed import Client, LocalCluster
from dask import delayed


def spawn_generators(seed, n):
    """
    Independent numpy Generators derived from one seed.

    Parameters
    ----------
    seed : int or None
        Root seed; None draws fresh OS entropy.
    n : int
        Number of streams.

    Returns
    -------
    list of numpy.random.Generator
    """
    children = np.random.SeedSequence(seed).spawn(n)
    return [np.random.default_rng(child) for child in children]


def split_entries(n_entries, n_chunks):
    """
    Split [0, n_entries) into at most `n_chunks` contiguous ranges whose
    sizes differ by at most one. Empty ranges are dropped.

    Returns
    -------
    list of (int, int)
        (entry_start, entry_stop) pairs.
    """
    n_chunks = max(1, min(n_chunks, n_entries))
    bounds = np.linspace(0, n_entries, n_chunks + 1).astype(int)
    return [
        (int(start), int(stop))
        for start, stop in zip(bounds[:-1], bounds[1:])
        if stop > start
    ]


def merge_results(results):
    """
    Sum per-chunk RecastResults into one.
    """
    results = list(results)
    if not results:
        raise RuntimeError("No per-chunk results to merge")
    return reduce(operator.add, results)


def create_local_client(n_workers):
    """In-process Dask cluster of single-threaded workers."""
    cluster = LocalCluster(n_workers=n_workers, threads_per_worker=1, processes=False)
    return Client(cluster)


def map_chunks(client, chunks, process_function, config):
    """
    Wrap a per-chunk processing function as Dask delayed tasks.

    Parameters
    ----------
    client : dask.distributed.Client
        Active Dask client (unused when building the graph).
    chunks : list
        Per-chunk work descriptions, e.g. (entry_start, entry_stop, seed).
    process_function : callable
        Function of the form process_function(chunk, config) returning a
        RecastResult.
    config : dict
        Configuration dictionary passed to the processing function.

    Returns
    -------
    list of delayed objects representing per-chunk results.
    """
    tasks = [delayed(process_function)(chunk, config) for chunk in chunks]
    return tasks
