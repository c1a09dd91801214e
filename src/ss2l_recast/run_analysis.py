"""
Main entry point for the same-sign dilepton recast.

Replays generated stop/gluino events (or background) stored as ROOT
generator records, applies the parameterised detector selection of the
CMS same-sign dilepton + b-jets search in one signal region, and reports:

  - the number of passing events, scaled by the leptonic branching
    correction, as one line appended to the summary file,
  - the cut-flow table of intermediate counts,
  - optionally a cut-flow plot.

Supports serial execution, local multi-process parallelism via
ProcessPoolExecutor, and a local Dask cluster.
"""

import argparse
import logging
import multiprocessing
import os
import time
from concurrent.futures import ProcessPoolExecutor, as_completed

import yaml
import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
import hist
from hist import Hist

from ss2l_recast.analysis.cutflow import CutCounters
from ss2l_recast.analysis.errors import ConfigurationError
from ss2l_recast.analysis.io import (
    LEPTONIC_BRANCHING_FACTOR,
    RootEventSource,
    append_summary_line,
    format_summary_line,
    num_entries,
)
from ss2l_recast.analysis.pipeline import (
    DEFAULT_ABORT_TOLERANCE,
    RecastResult,
    recast,
    stage_labels,
)
from ss2l_recast.analysis.regions import get_signal_region
from ss2l_recast.distributed.executor import (
    create_local_client,
    map_chunks,
    merge_results,
    spawn_generators,
    split_entries,
)
from ss2l_recast.utils.logging import get_console, log_banner, setup_logging

logger = logging.getLogger(__name__)

EXECUTORS = ("local", "dask")


# Argument parsing and config loading
def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Same-sign dilepton recast of generated events in one signal region."
    )
    parser.add_argument(
        "--config",
        default="config/config.yaml",
        help="Path to YAML configuration file.",
    )
    parser.add_argument(
        "--n-workers",
        type=int,
        default=None,
        help="Number of workers; overrides the config file.",
    )
    parser.add_argument(
        "--signal-region",
        type=int,
        default=None,
        help="Signal region ordinal (0-8); overrides the config file.",
    )
    parser.add_argument("--stop-mass", default=None, help="Stop mass label for the output line.")
    parser.add_argument("--gluino-mass", default=None, help="Gluino mass label for the output line.")
    parser.add_argument("--input", default=None, help="Input ROOT file; overrides the config file.")
    return parser.parse_args(argv)


def load_config(path):
    with open(path) as f:
        return yaml.safe_load(f)


def apply_overrides(config, args):
    """
    Return a copy of `config` with command-line values applied.
    """
    config = dict(config)
    config["point"] = dict(config.get("point", {}))
    if args.n_workers is not None:
        config["n_workers"] = args.n_workers
    if args.signal_region is not None:
        config["signal_region"] = args.signal_region
    if args.input is not None:
        config["input_file"] = args.input
    if args.stop_mass is not None:
        config["point"]["stop_mass"] = args.stop_mass
    if args.gluino_mass is not None:
        config["point"]["gluino_mass"] = args.gluino_mass
    return config


# Per-chunk analysis
def process_chunk(chunk, config):
    """
    Run the selection over one entry range of the input file.

    `chunk` is (entry_start, entry_stop, rng); each chunk carries its own
    random stream.
    """
    entry_start, entry_stop, rng = chunk
    source = RootEventSource(
        config["input_file"],
        entry_start=entry_start,
        entry_stop=entry_stop,
        tree=config.get("tree"),
    )
    return recast(
        source,
        config["signal_region"],
        entry_stop - entry_start,
        rng,
        abort_tolerance=config.get("abort_tolerance", DEFAULT_ABORT_TOLERANCE),
        include_leptons_in_cone=config.get("isolation", {}).get("include_leptons", True),
    )


def safe_process_chunk(chunk, config):
    """
    Wrapper so that a bad chunk doesn't kill the whole job.
    Configuration mistakes still stop the run.
    """
    try:
        return process_chunk(chunk, config)
    except ConfigurationError:
        raise
    except Exception as e:
        logger.warning(f"Error in entries {chunk[0]}-{chunk[1]}: {e}")
        return None


def run_chunks(chunks, config, n_workers, executor="local"):
    """
    Process all chunks serially, in a process pool, or on Dask.

    Returns
    -------
    list of RecastResult
        Results of the chunks that succeeded.
    """
    if executor not in EXECUTORS:
        raise ConfigurationError(f"Unknown executor {executor!r}, expected one of {EXECUTORS}")

    results = []

    # Serial path for N=1: avoids multiprocessing overhead
    if n_workers == 1:
        for i, chunk in enumerate(chunks, start=1):
            out = safe_process_chunk(chunk, config)
            if out is not None:
                results.append(out)
            logger.info(f"[{i}/{len(chunks)}] Completed entries {chunk[0]}-{chunk[1]}")
        return results

    if executor == "dask":
        client = create_local_client(n_workers=n_workers)
        try:
            tasks = map_chunks(client, chunks, safe_process_chunk, config)
            outputs = client.gather(client.compute(tasks))
        finally:
            client.close()
        return [out for out in outputs if out is not None]

    with ProcessPoolExecutor(max_workers=n_workers) as pool:
        future_to_chunk = {
            pool.submit(safe_process_chunk, chunk, config): chunk for chunk in chunks
        }
        for i, future in enumerate(as_completed(future_to_chunk), start=1):
            chunk = future_to_chunk[future]
            try:
                out = future.result()
            except ConfigurationError:
                raise
            except Exception as e:
                logger.error(f"Entries {chunk[0]}-{chunk[1]}: {e}")
                continue
            if out is not None:
                results.append(out)
            logger.info(f"[{i}/{len(chunks)}] Completed entries {chunk[0]}-{chunk[1]}")
    return results


def empty_result(region_index):
    """
    Zero result with the full cut-flow layout, for runs with no entries.
    """
    region = get_signal_region(region_index)
    counts = CutCounters((label, 0) for label in stage_labels(region))
    return RecastResult(counts=counts)


def make_cutflow_hist(counts):
    """
    Cut flow as a categorical histogram, one bin per selection stage.
    """
    h = Hist(hist.axis.StrCategory(counts.labels, name="cut", label="Selection"))
    h.fill(cut=counts.labels, weight=counts.values)
    return h


def plot_cutflow(counts, outdir, region_index):
    h = make_cutflow_hist(counts)
    values = h.values()
    labels = list(h.axes[0])

    fig, ax = plt.subplots(figsize=(8, 5))
    ax.bar(range(len(values)), values, label="Events")
    ax.set_xticks(range(len(values)))
    ax.set_xticklabels(labels, rotation=60, ha="right", fontsize=8)
    ax.set_yscale("log")
    ax.set_ylabel("Events")
    ax.set_title(f"Cut flow, signal region {region_index}")
    ax.legend(loc="best", frameon=False)
    fig.tight_layout()
    path = os.path.join(outdir, f"cutflow_SR{region_index}.png")
    fig.savefig(path)
    plt.close(fig)
    return path


def main(argv=None):
    setup_logging()
    args = parse_args(argv)
    config = apply_overrides(load_config(args.config), args)

    region_index = config["signal_region"]
    get_signal_region(region_index)

    input_file = config["input_file"]
    if not os.path.exists(input_file):
        raise RuntimeError(f"Input file {input_file} not found")

    n_entries = num_entries(input_file, config.get("tree"))
    # null means every entry; an explicit 0 runs nothing
    n_events = config.get("n_events")
    if n_events is None:
        n_events = n_entries
    n_events = min(n_events, n_entries)
    logger.info(log_banner(f"signal region {region_index}"))
    logger.info(f"Processing {n_events} of {n_entries} events from {input_file}")

    # Decide how many workers to use
    n_workers = config.get("n_workers", 1)
    max_procs = multiprocessing.cpu_count() or 1
    if n_workers > max_procs:
        logger.info(
            f"Requested {n_workers} workers but only {max_procs} cores available; "
            f"using {max_procs}."
        )
        n_workers = max_procs

    ranges = split_entries(n_events, n_workers)
    rngs = spawn_generators(config.get("seed"), len(ranges))
    chunks = [(start, stop, rng) for (start, stop), rng in zip(ranges, rngs)]

    start_time = time.perf_counter()
    results = run_chunks(chunks, config, n_workers, config.get("executor", "local"))
    wall_time = time.perf_counter() - start_time

    if chunks and not results:
        raise RuntimeError("No successful per-chunk results; nothing to merge.")

    if chunks:
        result = merge_results(results)
    else:
        result = empty_result(region_index)
    if result.aborted:
        logger.warning("Run stopped early; reporting partial results.")

    output_cfg = config.get("output", {})
    point = config.get("point", {})
    line = format_summary_line(
        point.get("stop_mass", ""),
        point.get("gluino_mass", ""),
        region_index,
        result.n_passed,
        result.n_attempted,
        branching_factor=output_cfg.get("branching_factor", LEPTONIC_BRANCHING_FACTOR),
    )
    summary_file = output_cfg.get("summary_file", "output.dat")
    append_summary_line(summary_file, line)

    get_console().print(result.counts.to_rich_table(title=f"Signal region {region_index}"))

    if output_cfg.get("make_plots", False):
        outdir = output_cfg.get("output_dir", "output")
        os.makedirs(outdir, exist_ok=True)
        path = plot_cutflow(result.counts, outdir, region_index)
        logger.info(f"Saved cut-flow plot to {path}")

    # Final summary
    logger.info(f"Events passing all cuts: {result.n_passed}")
    logger.info(f"Summary line: {line!r} appended to {summary_file}")
    logger.info(f"Total wall time: {wall_time:.2f} s")
    if wall_time > 0:
        logger.info(f"Average processing rate: {result.n_attempted / wall_time:.1f} events/s")

    return result


if __name__ == "__main__":
    main()
