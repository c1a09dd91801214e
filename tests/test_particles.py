import numpy as np
import pytest
pytest.importorskip("vector")
from ss2l_recast.analysis import particles
from ss2l_recast.analysis.particles import EventRecord, GenParticle


def test_particle_kinematics_and_charge(make_particle):
    mu = make_particle(-13, 45.0, 1.2, -0.7)

    assert np.isclose(mu.pt, 45.0)
    assert np.isclose(mu.eta, 1.2)
    assert np.isclose(mu.phi, -0.7)
    assert mu.is_muon and not mu.is_electron
    assert mu.abs_pid == 13
    assert mu.charge_sign == -1


def test_is_lepton():
    assert particles.is_lepton(11)
    assert particles.is_lepton(-13)
    # taus and neutrinos are not selected as leptons
    assert not particles.is_lepton(15)
    assert not particles.is_lepton(12)
    assert not particles.is_lepton(211)


def test_extract_event_splits_leptons_and_hadrons(make_gen):
    gens = [
        make_gen(11, 30.0, 0.1, 0.0),
        make_gen(211, 5.0, 0.2, 1.0),
        make_gen(-13, 25.0, -1.0, 2.0),
        make_gen(22, 8.0, 3.0, -1.0),
    ]

    leptons, hadrons = particles.extract_event(gens)

    assert [p.pid for p in leptons] == [11, -13]
    assert [p.pid for p in hadrons] == [211, 22]


def test_extract_event_skips_undetectable(make_gen):
    gens = [
        make_gen(11, 30.0, 0.1, 0.0, is_final=False),
        make_gen(12, 30.0, 0.1, 0.0, is_visible=False),
        make_gen(13, 30.0, 5.5, 0.0),  # outside instrumented coverage
        make_gen(211, 30.0, -6.0, 0.0),
        make_gen(211, 30.0, 4.9, 0.0),
    ]

    leptons, hadrons = particles.extract_event(gens)

    assert leptons == []
    assert len(hadrons) == 1
    assert np.isclose(hadrons[0].eta, 4.9)


def test_extract_event_drops_zero_transverse_momentum():
    gens = [
        GenParticle(211, True, True, 0.0, 0.0, 0.0, 0.0),
        GenParticle(22, True, True, 0.0, 0.0, 12.0, 12.0),
        GenParticle(-13, True, True, 0.0, 0.0, -30.0, 30.0),
    ]

    leptons, hadrons = particles.extract_event(gens)

    assert leptons == []
    assert hadrons == []


def test_extract_process_met_and_partons():
    gens = [
        GenParticle(13, True, True, 10.0, 0.0, 5.0, 15.0),
        GenParticle(5, True, True, 0.0, 20.0, 0.0, 20.0),
        GenParticle(-5, True, True, -5.0, -5.0, 1.0, 8.0),
        GenParticle(1, True, True, 0.0, -40.0, 3.0, 41.0),
        GenParticle(12, True, False, 100.0, 0.0, 0.0, 100.0),  # invisible
        GenParticle(21, False, True, 100.0, 0.0, 0.0, 100.0),  # not final
    ]

    met_vector, partons, bpartons = particles.extract_process(gens)

    # MET is minus the vector sum of all visible momenta, leptons included
    assert np.isclose(met_vector.px, -5.0)
    assert np.isclose(met_vector.py, 25.0)
    assert np.isclose(met_vector.pt, np.hypot(5.0, 25.0))

    assert [p.pid for p in partons] == [5, -5, 1]
    assert [p.pid for p in bpartons] == [5, -5]
    # b partons are the same objects as in the parton list
    assert bpartons[0] is partons[0]


def test_extract_empty_event():
    objects = particles.extract(EventRecord(event=[], process=[]))

    assert objects.leptons == []
    assert objects.hadrons == []
    assert objects.partons == []
    assert objects.bpartons == []
    assert objects.met == 0.0


def test_extract_signal_event(signal_event):
    objects = particles.extract(signal_event)

    assert len(objects.leptons) == 2
    assert len(objects.hadrons) == 1
    assert len(objects.partons) == 4
    assert len(objects.bpartons) == 2
    assert objects.met > 0.0
