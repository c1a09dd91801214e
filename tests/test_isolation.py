import pytest
pytest.importorskip("vector")
from ss2l_recast.analysis import isolation


def test_lone_lepton_is_isolated(make_particle):
    leptons = [make_particle(13, 50.0, 0.0, 0.0)]

    # the seed sits at DeltaR = 0 from itself but never counts
    assert isolation.cone_pt(0, leptons, []) == 0.0
    assert isolation.is_isolated(0, leptons, [])


def test_hadron_inside_cone(make_particle):
    leptons = [make_particle(11, 50.0, 0.0, 0.0)]
    near = make_particle(211, 10.0, 0.1, 0.1)
    far = make_particle(211, 30.0, 1.0, 1.0)

    assert isolation.cone_pt(0, leptons, [near, far]) == pytest.approx(10.0)
    # 10 GeV > 0.15 * 50 GeV
    assert not isolation.is_isolated(0, leptons, [near, far])
    assert isolation.is_isolated(0, leptons, [far])


def test_relative_isolation_threshold(make_particle):
    leptons = [make_particle(13, 100.0, 0.0, 0.0)]
    assert not isolation.is_isolated(0, leptons, [make_particle(211, 15.1, 0.0, 0.2)])
    assert isolation.is_isolated(0, leptons, [make_particle(211, 14.9, 0.0, 0.2)])


def test_cone_radius(make_particle):
    leptons = [make_particle(13, 100.0, 0.0, 0.0)]
    inside = make_particle(211, 50.0, 0.0, 0.29)
    outside = make_particle(211, 50.0, 0.0, 0.31)

    assert isolation.cone_pt(0, leptons, [inside]) == pytest.approx(50.0)
    assert isolation.cone_pt(0, leptons, [outside]) == 0.0


def test_other_leptons_policy(make_particle):
    leptons = [
        make_particle(13, 100.0, 0.0, 0.0),
        make_particle(-13, 30.0, 0.1, 0.0),
    ]

    # current policy adds the neighbouring lepton, never the seed
    assert isolation.cone_pt(0, leptons, []) == pytest.approx(30.0)
    assert isolation.cone_pt(1, leptons, []) == pytest.approx(100.0)
    assert not isolation.is_isolated(0, leptons, [])

    # legacy policy only looks at hadronic activity
    assert isolation.cone_pt(0, leptons, [], include_leptons=False) == 0.0
    assert isolation.is_isolated(0, leptons, [], include_leptons=False)


def test_seed_excluded_by_position(make_particle):
    # two leptons with identical momenta: each sees only the other
    a = make_particle(11, 40.0, 0.5, 0.5)
    b = make_particle(11, 40.0, 0.5, 0.5)
    assert isolation.cone_pt(0, [a, b], []) == pytest.approx(40.0)
    assert isolation.cone_pt(1, [a, b], []) == pytest.approx(40.0)


def test_apply_isolation_keeps_order(make_particle):
    leptons = [
        make_particle(13, 30.0, -1.0, 0.0),
        make_particle(11, 80.0, 1.0, 2.0),
        make_particle(13, 60.0, 0.0, -2.0),
    ]
    hadrons = [make_particle(211, 20.0, 1.05, 2.05)]

    isolated = isolation.apply_isolation(leptons, hadrons)

    assert isolated == [leptons[0], leptons[2]]


def test_apply_isolation_judges_against_full_list(make_particle):
    # two close leptons spoil each other even though both are dropped
    leptons = [
        make_particle(13, 50.0, 0.0, 0.0),
        make_particle(13, 50.0, 0.0, 0.1),
    ]
    assert isolation.apply_isolation(leptons, []) == []
    assert isolation.apply_isolation(leptons, [], include_leptons=False) == leptons
