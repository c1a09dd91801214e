"""
Event selection for the same-sign dilepton recast.

`select_event` drives one generated event through the ordered chain of
kinematic cuts, efficiencies and signal-region requirements, stopping at
the first stage that fails. `recast` loops over an event source, keeps
the cut-flow counters, and returns the number of events passing
everything.

Stage order (each stage counts only if all previous ones passed):

   1. >= 2 leptons after kinematic cuts (jets are cut too, no count gate)
   2. >= 2 leptons after identification efficiency
   3. >= 2 leptons after isolation, then leptons are pT-ordered
   4. >= 2 b partons after b-tagging efficiency
   5. >= 2 leptons
   6. dilepton trigger efficiency
   7. two leading leptons same sign
   8. jet multiplicity          (signal region)
   9. b-jet multiplicity        (signal region)
  10. MET turn-on               (signal region)
  11. HT turn-on                (signal region)
  12. ++ / -- charge selection  (signal region)
"""

import logging
from dataclasses import dataclass, field
from typing import List

from ss2l_recast.analysis.cutflow import CutCounters
from ss2l_recast.analysis.efficiency import (
    passes_btag,
    passes_dilepton_trigger,
    passes_ht_efficiency,
    passes_lepton_id,
    passes_met_efficiency,
)
from ss2l_recast.analysis.isolation import apply_isolation
from ss2l_recast.analysis.particles import extract
from ss2l_recast.analysis.physics import scalar_sum_pt
from ss2l_recast.analysis.regions import get_signal_region
from ss2l_recast.analysis.selection import (
    apply_cut,
    jet_kinematic_cut,
    lepton_kinematic_cut,
    pt_ordered,
)

logger = logging.getLogger(__name__)

GENERATED_LABEL = "Generated events"

STAGE_LABELS = (
    ">1 lep. kin. cuts",
    ">1 lep. ID. eff.",
    ">1 lep. Iso. eff.",
    ">1 bjets tagged",
    "at least two leptons",
    "triggered two leptons",
    "same sign dileptons",
)

N_STAGES = len(STAGE_LABELS) + 5

# Pythia's default for Main:timesAllowErrors
DEFAULT_ABORT_TOLERANCE = 10


def stage_labels(region):
    """
    Labels of all counter rows for `region`, generated-events row first.

    The signal-region stages carry the thresholds actually used, so a
    cut-flow table describes itself.
    """
    return [
        GENERATED_LABEL,
        *STAGE_LABELS,
        f"at least {region.min_jets} jets",
        f"at least {region.min_bjets} b jets",
        f"at least {region.min_met:g} GeV MET",
        f"at least {region.min_ht:g} GeV HT",
        region.charge_label,
    ]


@dataclass
class EventSelection:
    """
    Outcome of one event.

    Attributes
    ----------
    stages_passed : int
        Number of consecutive stages passed, 0 to N_STAGES.
    lepton_counts : list of int
        Lepton multiplicity after the kinematic, identification and
        isolation stages, for the stages that were reached.
    """

    stages_passed: int = 0
    lepton_counts: List[int] = field(default_factory=list)

    @property
    def passed(self):
        return self.stages_passed == N_STAGES


def select_event(record, region, rng, include_leptons_in_cone=True):
    """
    Apply the full selection to one generated event.

    Parameters
    ----------
    record : EventRecord
        Event and hard-process particle collections.
    region : SignalRegion
        Thresholds for the signal-region stages.
    rng : numpy.random.Generator
        Source of every efficiency draw.
    include_leptons_in_cone : bool
        Isolation cone-content policy, see `isolation.cone_pt`.

    Returns
    -------
    EventSelection
    """
    result = EventSelection()
    objects = extract(record)

    # Kinematic acceptance
    leptons = apply_cut(lepton_kinematic_cut, objects.leptons)
    result.lepton_counts.append(len(leptons))
    if len(leptons) < 2:
        return result
    result.stages_passed += 1

    partons = apply_cut(jet_kinematic_cut, objects.partons)

    # Identification
    leptons = apply_cut(lambda lep: passes_lepton_id(lep, rng), leptons)
    result.lepton_counts.append(len(leptons))
    if len(leptons) < 2:
        return result
    result.stages_passed += 1

    # Isolation can change which leptons are leading, so order afterwards
    leptons = apply_isolation(
        leptons, objects.hadrons, include_leptons=include_leptons_in_cone
    )
    result.lepton_counts.append(len(leptons))
    if len(leptons) < 2:
        return result
    result.stages_passed += 1
    leptons = pt_ordered(leptons)

    # b-tagging at parton level
    bpartons = apply_cut(lambda b: passes_btag(b, rng), objects.bpartons)
    if len(bpartons) < 2:
        return result
    result.stages_passed += 1

    if len(leptons) < 2:
        return result
    result.stages_passed += 1

    if not passes_dilepton_trigger(leptons, rng):
        return result
    result.stages_passed += 1

    # only the two hardest leptons are considered
    lead_sign = leptons[0].charge_sign
    if lead_sign != leptons[1].charge_sign:
        return result
    result.stages_passed += 1

    # Signal-region requirements
    if len(partons) < region.min_jets:
        return result
    result.stages_passed += 1

    if len(bpartons) < region.min_bjets:
        return result
    result.stages_passed += 1

    if not passes_met_efficiency(objects.met, region.min_met, rng):
        return result
    result.stages_passed += 1

    if not passes_ht_efficiency(scalar_sum_pt(partons), region.min_ht, rng):
        return result
    result.stages_passed += 1

    # pair agreement was already required, so the leading sign decides
    if not region.accepts_charge(lead_sign):
        return result
    result.stages_passed += 1

    return result


@dataclass
class RecastResult:
    """
    Totals of one run (or of several merged runs).

    Attributes
    ----------
    n_passed : int
        Events passing every stage.
    counts : CutCounters
        Cut flow, "Generated events" first.
    n_attempted : int
        Generator calls made, failed ones included.
    aborted : bool
        True if the run stopped early on too many generator failures.
    """

    n_passed: int = 0
    counts: CutCounters = field(default_factory=CutCounters)
    n_attempted: int = 0
    aborted: bool = False

    def __add__(self, other):
        if not isinstance(other, RecastResult):
            return NotImplemented
        return RecastResult(
            n_passed=self.n_passed + other.n_passed,
            counts=self.counts + other.counts,
            n_attempted=self.n_attempted + other.n_attempted,
            aborted=self.aborted or other.aborted,
        )


def recast(
    source,
    region_index,
    n_events,
    rng,
    abort_tolerance=DEFAULT_ABORT_TOLERANCE,
    include_leptons_in_cone=True,
):
    """
    Run the selection over up to `n_events` generator calls.

    Parameters
    ----------
    source : object
        Event source with `next_event()` returning an EventRecord, or
        None when no event could be produced.
    region_index : int
        Signal region ordinal, see `regions.SIGNAL_REGIONS`.
    n_events : int
        Number of generator calls to make.
    rng : numpy.random.Generator
        Random stream for all efficiency draws of this run.
    abort_tolerance : int
        The run stops once this many generator calls have failed.
        The partial result is still returned.
    include_leptons_in_cone : bool
        Isolation cone-content policy.

    Returns
    -------
    RecastResult
    """
    region = get_signal_region(region_index)

    n_generated = 0
    stage_counts = [0] * N_STAGES
    n_passed = 0
    n_failures = 0
    n_attempted = 0
    aborted = False

    for _ in range(n_events):
        n_attempted += 1
        record = source.next_event()
        if record is None:
            n_failures += 1
            if n_failures < abort_tolerance:
                continue
            logger.warning(
                "Event generation aborted prematurely after %d failed attempts",
                n_failures,
            )
            aborted = True
            break

        n_generated += 1
        selection = select_event(
            record, region, rng, include_leptons_in_cone=include_leptons_in_cone
        )
        for i in range(selection.stages_passed):
            stage_counts[i] += 1
        if selection.passed:
            n_passed += 1

    counts = CutCounters()
    labels = stage_labels(region)
    counts.fill(labels[0], n_generated)
    for label, count in zip(labels[1:], stage_counts):
        counts.fill(label, count)

    logger.debug(
        "Signal region %d: %d of %d generated events passed",
        region_index,
        n_passed,
        n_generated,
    )

    return RecastResult(
        n_passed=n_passed,
        counts=counts,
        n_attempted=n_attempted,
        aborted=aborted,
    )
