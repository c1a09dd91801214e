"""
Event sources and output for the recast.

An event source hands out one `EventRecord` per call to `next_event()`,
or None if no event could be produced. Two sources are provided:

  - RootEventSource: generator records stored in a ROOT file, read with
    uproot into Awkward Arrays,
  - PythiaEventSource: an adapter around a live Pythia8-like generator.
"""

import os

import awkward as ak
import uproot

from ss2l_recast.analysis.particles import EventRecord, GenParticle


COLLECTIONS = ("event", "process")
FIELDS = ("pid", "isFinal", "isVisible", "px", "py", "pz", "e")

DEFAULT_BRANCHES = [f"{coll}_{name}" for coll in COLLECTIONS for name in FIELDS]

DEFAULT_TREE = "events"

# 0.3257^2: both W bosons forced to decay leptonically at generation
LEPTONIC_BRANCHING_FACTOR = 0.10608


def _find_tree(file, name=None):
    """
    Detect the TTree holding the generator records.

    Logic:
    1. If `name` (default 'events') exists, use it.
    2. Otherwise, search for exactly one TTree.
    3. Otherwise, search for a TTree inside subdirectories.
    """
    name = name or DEFAULT_TREE

    if name in file.keys():
        return file[name]

    # Match with ';1' versioning
    if f"{name};1" in file.keys():
        return file[f"{name};1"]

    tt_keys = [k for k, v in file.classnames().items() if v == "TTree"]
    if len(tt_keys) == 1:
        return file[tt_keys[0]]

    for key in file.keys():
        try:
            subdir = file[key]
            subkeys = subdir.keys()
        except AttributeError:
            continue
        for subkey in subkeys:
            full = f"{key}/{subkey}"
            if file[full].classname == "TTree":
                return file[full]

    raise RuntimeError(f"No TTree found in file {file.file_path}")


def load_events(filename, branches=None, tree=None, entry_start=None, entry_stop=None):
    """
    Load generator-record branches into an Awkward Array.
    """
    if branches is None:
        branches = DEFAULT_BRANCHES

    with uproot.open(filename) as f:
        ttree = _find_tree(f, tree)
        arrays = ttree.arrays(
            branches,
            library="ak",
            entry_start=entry_start,
            entry_stop=entry_stop,
        )

    return arrays


def num_entries(filename, tree=None):
    with uproot.open(filename) as f:
        return _find_tree(f, tree).num_entries


def _collection(entry, prefix):
    columns = [entry[f"{prefix}_{name}"] for name in FIELDS]
    return [
        GenParticle(int(pid), bool(final), bool(visible), px, py, pz, e)
        for pid, final, visible, px, py, pz, e in zip(*columns)
    ]


def record_from_entry(entry):
    """
    Build an EventRecord from one entry (a dict of lists) of the arrays.
    """
    return EventRecord(
        event=_collection(entry, "event"),
        process=_collection(entry, "process"),
    )


class RootEventSource:
    """
    Replays generator records from a ROOT file.

    Parameters
    ----------
    filename : str
        Input ROOT file.
    entry_start, entry_stop : int, optional
        Entry range to read, for splitting a file between workers.
    tree : str, optional
        TTree name, auto-detected if absent.
    arrays : ak.Array, optional
        Preloaded arrays; the file is not opened in that case.
    """

    def __init__(self, filename=None, entry_start=None, entry_stop=None, tree=None, arrays=None):
        if arrays is None:
            if filename is None:
                raise ValueError("RootEventSource needs a filename or arrays")
            arrays = load_events(
                filename, tree=tree, entry_start=entry_start, entry_stop=entry_stop
            )
        self.arrays = arrays
        self._next = 0

    def __len__(self):
        return len(self.arrays)

    def next_event(self):
        if self._next >= len(self.arrays):
            return None
        entry = ak.to_list(self.arrays[self._next])
        self._next += 1
        return record_from_entry(entry)


class PythiaEventSource:
    """
    Adapter around a Pythia8-like generator object.

    The wrapped object must provide `next()` (returning False on failure)
    and `event` / `process` records whose particles offer `id()`,
    `isFinal()`, `isVisible()`, `px()`, `py()`, `pz()` and `e()`.
    """

    def __init__(self, pythia):
        self.pythia = pythia

    @staticmethod
    def _convert(record):
        return [
            GenParticle(
                int(p.id()),
                bool(p.isFinal()),
                bool(p.isVisible()),
                float(p.px()),
                float(p.py()),
                float(p.pz()),
                float(p.e()),
            )
            for p in record
        ]

    def next_event(self):
        if not self.pythia.next():
            return None
        return EventRecord(
            event=self._convert(self.pythia.event),
            process=self._convert(self.pythia.process),
        )


def format_summary_line(
    stop_mass,
    gluino_mass,
    region_index,
    n_passed,
    n_events,
    branching_factor=LEPTONIC_BRANCHING_FACTOR,
):
    """
    One tab-separated result line:
    stop mass, gluino mass, signal region, corrected pass count, events.

    The pass count is multiplied by `branching_factor` to undo the
    forced leptonic W decays of the generated sample. This correction
    belongs to the caller; the selection itself never applies it.
    """
    corrected = float(n_passed) * branching_factor
    return f"{stop_mass}\t{gluino_mass}\t{region_index}\t{corrected:.6f}\t{n_events}"


def append_summary_line(path, line):
    """
    Append `line` to the summary file, creating its directory if needed.
    """
    outdir = os.path.dirname(path)
    if outdir:
        os.makedirs(outdir, exist_ok=True)
    with open(path, "a") as f:
        f.write(line + "\n")
