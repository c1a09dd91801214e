import sys
import os

import numpy as np
import pytest

# Absolute path to project root
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC_PATH = os.path.join(PROJECT_ROOT, "src")

# Prepend src to sys.path so it overrides site-packages
sys.path.insert(0, SRC_PATH)
sys.path.insert(0, PROJECT_ROOT)

from ss2l_recast.analysis.particles import EventRecord, GenParticle, Particle  # noqa: E402


def gen_particle(pid, pt, eta, phi, is_final=True, is_visible=True):
    # massless particle from (pt, eta, phi)
    px = pt * np.cos(phi)
    py = pt * np.sin(phi)
    pz = pt * np.sinh(eta)
    e = pt * np.cosh(eta)
    return GenParticle(pid, is_final, is_visible, px, py, pz, e)


def particle(pid, pt, eta, phi):
    return Particle.from_gen(gen_particle(pid, pt, eta, phi))


class FixedRandom:
    # Stand-in for numpy.random.Generator returning a constant draw
    def __init__(self, value=0.0):
        self.value = value
        self.calls = 0

    def random(self):
        self.calls += 1
        return self.value


class ListSource:
    # Event source replaying a list; None entries are failed generator calls
    def __init__(self, records):
        self._records = list(records)
        self.calls = 0

    def next_event(self):
        self.calls += 1
        if not self._records:
            return None
        return self._records.pop(0)


class RepeatSource:
    def __init__(self, record):
        self.record = record

    def next_event(self):
        return self.record


@pytest.fixture
def make_gen():
    return gen_particle


@pytest.fixture
def make_particle():
    return particle


@pytest.fixture
def fixed_random():
    return FixedRandom


@pytest.fixture
def list_source():
    return ListSource


@pytest.fixture
def repeat_source():
    return RepeatSource


@pytest.fixture
def signal_event():
    """
    Clean same-sign dimuon event with two hard b quarks and two light
    quarks, built to pass region 8 whenever the efficiencies allow.
    """
    event = [
        gen_particle(13, 100.0, 0.5, 0.0),
        gen_particle(13, 80.0, -0.5, 3.0),
        # soft hadron far from both muons
        gen_particle(211, 10.0, 2.0, 1.5),
        # neutrino, invisible
        gen_particle(14, 50.0, 0.0, -2.0, is_visible=False),
    ]
    process = [
        gen_particle(13, 100.0, 0.5, 0.0),
        gen_particle(13, 80.0, -0.5, 3.0),
        gen_particle(5, 130.0, 0.3, 1.0),
        gen_particle(-5, 130.0, -0.3, -2.0),
        gen_particle(1, 200.0, 0.8, 2.0),
        gen_particle(2, 200.0, -0.8, -1.0),
        gen_particle(14, 50.0, 0.0, -2.0, is_visible=False),
    ]
    return EventRecord(event=event, process=process)
