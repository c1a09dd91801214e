"""
Parameterised detector efficiencies.

Each efficiency comes as a pair:

  - a deterministic `*_probability` function returning the efficiency
    for the given kinematics,
  - a stochastic `passes_*` function comparing one uniform draw from an
    explicit `numpy.random.Generator` against that probability.

Nothing is cached: every call to a `passes_*` function makes its own
draw, except where the outcome is certain and no draw is made at all.

Parameterisations follow CMS SUS-12-017 / SUS-12-029 and the MET/HT
turn-on curves of arXiv:1205.3933.
"""

import math

from ss2l_recast.analysis.errors import ConfigurationError

# Lepton identification efficiency, flat in pT
ID_EFFICIENCY = {11: 0.76, 13: 0.86}

# Combined selection efficiency, eq. 1 of SUS-12-017: (eps_inf, eps_20, sigma)
SELECTION_PARAMETERS = {11: (0.58, 0.22, 12.0), 13: (0.66, 0.47, 26.0)}

# b-tagging
BTAG_PLATEAU = 0.65
BTAG_PLATEAU_RANGE = (90.0, 170.0)
BTAG_LOW_SLOPE = 0.0038
BTAG_HIGH_SLOPE = 0.0007
BTAG_PT_FLOOR = 40.0

# Dilepton trigger, keyed by the sorted |pid| pair of the two leading leptons
TRIGGER_EFFICIENCY = {(11, 11): 0.95, (11, 13): 0.92, (13, 13): 0.88}

# Turn-on curves (x12, sigma), highest threshold first
MET_TURN_ON = ((120.0, (123.0, 37.0)), (50.0, (43.0, 39.0)), (30.0, (13.0, 44.0)))
HT_TURN_ON = ((320.0, (188.0, 88.0)), (200.0, (308.0, 102.0)))

# Thresholds already guaranteed by the object selection: two jets at
# 40 GeV give HT >= 80
TRIVIAL_MET = (0.0,)
TRIVIAL_HT = (0.0, 80.0)


def _draw(probability, rng):
    return rng.random() < probability


# Lepton identification
def id_probability(lepton):
    return ID_EFFICIENCY.get(lepton.abs_pid, 0.0)


def passes_lepton_id(lepton, rng):
    return _draw(id_probability(lepton), rng)


def selection_probability(lepton):
    """
    Legacy combined (ID x isolation) selection efficiency,
    eps_inf * erf((pt - 20)/sigma) + eps_20 * erfc((pt - 20)/sigma).

    The default selection applies ID and isolation separately instead, so
    that isolation responds to the boost of the recast signal.
    """
    params = SELECTION_PARAMETERS.get(lepton.abs_pid)
    if params is None:
        return 0.0
    eps_inf, eps_20, sigma = params
    x = (lepton.pt - 20.0) / sigma
    return eps_inf * math.erf(x) + eps_20 * math.erfc(x)


def passes_lepton_selection(lepton, rng):
    return _draw(selection_probability(lepton), rng)


# b-tagging
def btag_probability(pt):
    """
    Tagging probability of a b parton with transverse momentum `pt` [GeV].

    Flat at 0.65 between 90 and 170 GeV, falling linearly on both sides,
    and zero at or below the 40 GeV jet threshold.
    """
    low, high = BTAG_PLATEAU_RANGE
    if pt <= BTAG_PT_FLOOR:
        return 0.0
    if pt <= low:
        return BTAG_PLATEAU - (low - pt) * BTAG_LOW_SLOPE
    if pt >= high:
        return BTAG_PLATEAU - (pt - high) * BTAG_HIGH_SLOPE
    return BTAG_PLATEAU


def passes_btag(parton, rng):
    return _draw(btag_probability(parton.pt), rng)


# Dilepton trigger
def trigger_probability(leptons):
    """
    Trigger efficiency for the two leading leptons of a pT-ordered list.

    The 17/8 GeV trigger thresholds are implied by the lepton acceptance
    and are not checked here.
    """
    if len(leptons) < 2:
        return 0.0
    pair = tuple(sorted((leptons[0].abs_pid, leptons[1].abs_pid)))
    return TRIGGER_EFFICIENCY.get(pair, 0.0)


def passes_dilepton_trigger(leptons, rng):
    if len(leptons) < 2:
        return False
    return _draw(trigger_probability(leptons), rng)


# Turn-on curves
def turn_on_probability(x, x12, sigma):
    """
    Smoothed step 0.5 * (erf((x - x12) / sigma) + 1), equal to 0.5 at x12.
    """
    return 0.5 * (math.erf((x - x12) / sigma) + 1.0)


def _turn_on_parameters(threshold, table, trivial, quantity):
    if threshold in trivial:
        return None
    for floor, params in table:
        if threshold >= floor:
            return params
    raise ConfigurationError(
        f"No {quantity} turn-on curve for a minimum of {threshold} GeV"
    )


def met_turn_on_parameters(min_met):
    """
    (x12, sigma) of the MET turn-on for a signal-region MET floor, or
    None when the floor is zero and the cut always passes.
    """
    return _turn_on_parameters(min_met, MET_TURN_ON, TRIVIAL_MET, "MET")


def ht_turn_on_parameters(min_ht):
    """
    (x12, sigma) of the HT turn-on for a signal-region HT floor, or None
    when the floor is already implied by the jet selection.
    """
    return _turn_on_parameters(min_ht, HT_TURN_ON, TRIVIAL_HT, "HT")


def met_probability(met, min_met):
    params = met_turn_on_parameters(min_met)
    if params is None:
        return 1.0
    return turn_on_probability(met, *params)


def ht_probability(ht, min_ht):
    params = ht_turn_on_parameters(min_ht)
    if params is None:
        return 1.0
    return turn_on_probability(ht, *params)


def passes_met_efficiency(met, min_met, rng):
    params = met_turn_on_parameters(min_met)
    if params is None:
        return True
    return _draw(turn_on_probability(met, *params), rng)


def passes_ht_efficiency(ht, min_ht, rng):
    params = ht_turn_on_parameters(min_ht)
    if params is None:
        return True
    return _draw(turn_on_probability(ht, *params), rng)
