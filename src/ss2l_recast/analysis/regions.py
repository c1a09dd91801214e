"""
Signal-region definitions of the CMS same-sign dilepton + b-jets search
(PAS SUS-12-029, table 2).
"""

from dataclasses import dataclass

from ss2l_recast.analysis.errors import ConfigurationError


@dataclass(frozen=True)
class SignalRegion:
    """
    Thresholds of one signal region.

    Attributes
    ----------
    min_jets, min_bjets : int
        Minimum number of selected jets / tagged b jets.
    min_met, min_ht : float
        Minimum missing transverse energy and HT [GeV].
    plusplus, minusminus : bool
        Which same-sign charge combinations are accepted.
    """

    min_jets: int
    min_bjets: int
    min_met: float
    min_ht: float
    plusplus: bool = True
    minusminus: bool = True

    @property
    def charge_label(self):
        if self.plusplus and self.minusminus:
            return "either ++ or -- leptons"
        if self.plusplus:
            return "only ++ leptons"
        if self.minusminus:
            return "only -- leptons"
        return "neither ++ nor -- leptons"

    def accepts_charge(self, sign):
        """
        True if a same-sign pair whose identity codes carry `sign`
        (+1 or -1) is allowed in this region.
        """
        if sign > 0:
            return self.plusplus
        if sign < 0:
            return self.minusminus
        return False


SIGNAL_REGIONS = (
    SignalRegion(min_jets=2, min_bjets=2, min_met=0.0, min_ht=80.0),
    SignalRegion(min_jets=2, min_bjets=2, min_met=30.0, min_ht=80.0),
    # SR2 is SR1 restricted to ++ pairs
    SignalRegion(min_jets=2, min_bjets=2, min_met=30.0, min_ht=80.0, minusminus=False),
    SignalRegion(min_jets=4, min_bjets=2, min_met=120.0, min_ht=200.0),
    SignalRegion(min_jets=4, min_bjets=2, min_met=50.0, min_ht=200.0),
    SignalRegion(min_jets=4, min_bjets=2, min_met=50.0, min_ht=320.0),
    SignalRegion(min_jets=4, min_bjets=2, min_met=120.0, min_ht=320.0),
    SignalRegion(min_jets=3, min_bjets=3, min_met=50.0, min_ht=200.0),
    SignalRegion(min_jets=4, min_bjets=2, min_met=0.0, min_ht=320.0),
)


def get_signal_region(index):
    """
    Look up a signal region by its ordinal (0-8).

    Raises
    ------
    ConfigurationError
        If `index` is not a valid ordinal. Negative indices are rejected
        rather than counted from the end.
    """
    if isinstance(index, bool) or not isinstance(index, int):
        raise ConfigurationError(f"Signal region index must be an int, got {index!r}")
    if not 0 <= index < len(SIGNAL_REGIONS):
        raise ConfigurationError(
            f"Signal region {index} out of range [0, {len(SIGNAL_REGIONS) - 1}]"
        )
    return SIGNAL_REGIONS[index]
