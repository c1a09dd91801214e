"""
Lepton isolation.

A lepton is isolated if the summed transverse momentum of the activity
within a cone of DeltaR < 0.3 around it stays below 15% of its own pT.

Two cone-content policies are supported through `include_leptons`:

  - False: only hadronic activity enters the cone (legacy behaviour),
  - True:  other leptons in the cone are added as well; the seed lepton
           itself is always excluded.
"""

from ss2l_recast.analysis.physics import delta_r

CONE_RADIUS = 0.3
RELATIVE_ISOLATION = 0.15


def cone_pt(seed_index, leptons, hadrons, include_leptons=True):
    """
    Sum of pT inside the isolation cone of `leptons[seed_index]`.

    Parameters
    ----------
    seed_index : int
        Index of the candidate lepton in `leptons`.
    leptons : list of Particle
        Leptons of the event, seed included.
    hadrons : list of Particle
        Hadronic activity of the event.
    include_leptons : bool
        Also count the other leptons inside the cone.

    Returns
    -------
    float
        Scalar pT sum [GeV].
    """
    seed = leptons[seed_index]
    total = 0.0

    for hadron in hadrons:
        if delta_r(seed, hadron) < CONE_RADIUS:
            total += hadron.pt

    if include_leptons:
        for i, lepton in enumerate(leptons):
            if i == seed_index:
                continue
            if delta_r(seed, lepton) < CONE_RADIUS:
                total += lepton.pt

    return total


def is_isolated(seed_index, leptons, hadrons, include_leptons=True):
    seed = leptons[seed_index]
    cone = cone_pt(seed_index, leptons, hadrons, include_leptons=include_leptons)
    return cone < RELATIVE_ISOLATION * seed.pt


def apply_isolation(leptons, hadrons, include_leptons=True):
    """
    Keep the isolated leptons, preserving input order.

    Every lepton is judged against the full input list, so removing one
    lepton never changes the verdict on another within the same call.
    """
    return [
        lepton
        for i, lepton in enumerate(leptons)
        if is_isolated(i, leptons, hadrons, include_leptons=include_leptons)
    ]
