"""
Exceptions raised by the recast analysis.

Cut failures are ordinary outcomes and never raise; only configuration
mistakes do.
"""


class ConfigurationError(ValueError):
    """
    Raised for thresholds or indices outside the closed set of
    signal-region definitions (unknown MET/HT bracket, bad region index,
    unknown executor).
    """
