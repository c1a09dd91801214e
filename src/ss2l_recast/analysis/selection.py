"""
Object-level kinematic selection for the same-sign dilepton analysis.

Leptons and jets are accepted inside the tracker coverage with the
transverse-momentum thresholds of SUS-12-017/029. Electrons in the
barrel-endcap transition region are rejected.
"""

# Lepton acceptance
LEPTON_PT_MIN = {11: 20.0, 13: 20.0}
LEPTON_ETA_MAX = 2.4
ELECTRON_GAP = (1.442, 1.566)

# Jet acceptance, shared by light and b jets
JET_PT_MIN = 40.0
JET_ETA_MAX = 2.4


def lepton_kinematic_cut(lepton):
    """
    True if an electron or muon is inside the lepton acceptance.
    """
    pt_min = LEPTON_PT_MIN.get(lepton.abs_pid)
    if pt_min is None or lepton.pt < pt_min:
        return False

    abs_eta = abs(lepton.eta)
    if abs_eta >= LEPTON_ETA_MAX:
        return False

    # electrons must avoid the barrel/endcap transition
    if lepton.is_electron:
        return abs_eta < ELECTRON_GAP[0] or abs_eta > ELECTRON_GAP[1]
    return True


def jet_kinematic_cut(jet):
    """
    True if a parton (light or b) is inside the jet acceptance.
    """
    return jet.pt >= JET_PT_MIN and abs(jet.eta) < JET_ETA_MAX


def apply_cut(predicate, particles):
    """
    Keep the particles for which `predicate` is true.

    The surviving particles keep their relative order and are the same
    objects as in the input list.
    """
    return [p for p in particles if predicate(p)]


def pt_ordered(particles):
    """
    Return a new list sorted by descending transverse momentum.
    """
    return sorted(particles, key=lambda p: p.pt, reverse=True)
