"""
Particle extraction from generator records.

Each generated event arrives as two collections of generator particles:
the full event record (after showering and hadronisation) and the
hard-process record. This module turns them into the typed lists used by
the selection:

  - leptons and hadronic activity from the detectable final state,
  - partons and b-partons from the hard process,
  - the missing-transverse-momentum vector, accumulated as minus the sum
    of all visible hard-process momenta.
"""

from dataclasses import dataclass, field
from typing import List, NamedTuple

import numpy as np

from ss2l_recast.analysis.physics import build_four_vector, zero_four_vector


ELECTRON_ID = 11
MUON_ID = 13
BOTTOM_ID = 5

# Instrumented pseudorapidity coverage
ETA_COVERAGE = 5.0


class GenParticle(NamedTuple):
    """One row of a generator particle record."""

    pid: int
    is_final: bool
    is_visible: bool
    px: float
    py: float
    pz: float
    e: float


class EventRecord(NamedTuple):
    """The two particle collections of one generated event."""

    event: List[GenParticle]
    process: List[GenParticle]


@dataclass(frozen=True, eq=False)
class Particle:
    """
    Identity code plus four-momentum.

    Attributes
    ----------
    pid : int
        Signed PDG identity code.
    p4 : vector.MomentumObject4D
        Four-momentum [GeV].
    """

    pid: int
    p4: object

    @classmethod
    def from_gen(cls, gen):
        return cls(int(gen.pid), build_four_vector(gen.px, gen.py, gen.pz, gen.e))

    @property
    def pt(self):
        return float(self.p4.pt)

    @property
    def eta(self):
        with np.errstate(divide="ignore", invalid="ignore"):
            return float(self.p4.eta)

    @property
    def phi(self):
        return float(self.p4.phi)

    @property
    def e(self):
        return float(self.p4.E)

    @property
    def abs_pid(self):
        return abs(self.pid)

    @property
    def is_electron(self):
        return self.abs_pid == ELECTRON_ID

    @property
    def is_muon(self):
        return self.abs_pid == MUON_ID

    @property
    def charge_sign(self):
        """Sign of the identity code: +1, -1 (0 for pid 0)."""
        return int(np.sign(self.pid))


@dataclass
class ExtractedEvent:
    """Event-scoped working set, rebuilt for every event."""

    leptons: list = field(default_factory=list)
    hadrons: list = field(default_factory=list)
    partons: list = field(default_factory=list)
    bpartons: list = field(default_factory=list)
    met_vector: object = field(default_factory=zero_four_vector)

    @property
    def met(self):
        return float(self.met_vector.pt)


def is_lepton(pid):
    return abs(pid) in (ELECTRON_ID, MUON_ID)


def detectable_particle(gen):
    """
    Convert a generator row to a Particle if it is final-state, visible
    (no neutrinos or other invisibles) and inside the instrumented |eta|
    coverage. Returns None otherwise.
    """
    if not gen.is_final or not gen.is_visible:
        return None
    particle = Particle.from_gen(gen)
    # no transverse momentum means along the beam line, outside coverage
    if particle.pt == 0.0 or not abs(particle.eta) < ETA_COVERAGE:
        return None
    return particle


def extract_event(gen_particles):
    """
    Split the detectable final state into leptons and hadronic activity.

    Returns
    -------
    (list of Particle, list of Particle)
        Leptons (|pid| 11 or 13) and everything else.
    """
    leptons = []
    hadrons = []
    for gen in gen_particles:
        particle = detectable_particle(gen)
        if particle is None:
            continue
        if is_lepton(particle.pid):
            leptons.append(particle)
        else:
            hadrons.append(particle)
    return leptons, hadrons


def extract_process(gen_particles):
    """
    Accumulate generator-level MET and collect partons from the hard process.

    Every detectable momentum (leptons included) is subtracted from the
    missing-energy vector. Non-leptons are partons; those with |pid| == 5
    are also stored as b-partons.

    Returns
    -------
    (vector.MomentumObject4D, list of Particle, list of Particle)
        MET vector, partons, b-partons.
    """
    met_vector = zero_four_vector()
    partons = []
    bpartons = []
    for gen in gen_particles:
        particle = detectable_particle(gen)
        if particle is None:
            continue

        met_vector = met_vector - particle.p4

        if is_lepton(particle.pid):
            continue
        partons.append(particle)
        if particle.abs_pid == BOTTOM_ID:
            bpartons.append(particle)
    return met_vector, partons, bpartons


def extract(record):
    """
    Build the working set for one event record.
    """
    leptons, hadrons = extract_event(record.event)
    met_vector, partons, bpartons = extract_process(record.process)
    return ExtractedEvent(
        leptons=leptons,
        hadrons=hadrons,
        partons=partons,
        bpartons=bpartons,
        met_vector=met_vector,
    )
