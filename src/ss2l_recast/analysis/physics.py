"""
Four-vector utilities for the recast analysis.

Thin helpers on top of scikit-hep `vector` momentum objects: building a
four-momentum from Cartesian components, angular separation, and scalar
sums of transverse momentum.
"""

import numpy as np
import vector


def build_four_vector(px, py, pz, energy):
    """
    Construct a single four-momentum from (px, py, pz, E).

    Parameters
    ----------
    px, py, pz : float
        Cartesian momentum components [GeV].
    energy : float
        Energy [GeV].

    Returns
    -------
    vector.MomentumObject4D
        Four-momentum exposing pt, eta, phi, E.
    """
    # numpy scalars so that eta of a beam-axis momentum becomes +-inf
    # instead of raising ZeroDivisionError
    return vector.obj(
        px=np.float64(px),
        py=np.float64(py),
        pz=np.float64(pz),
        E=np.float64(energy),
    )


def zero_four_vector():
    return build_four_vector(0.0, 0.0, 0.0, 0.0)


def delta_phi(phi1, phi2):
    """
    Azimuthal difference wrapped into [-pi, pi).
    """
    return (phi1 - phi2 + np.pi) % (2 * np.pi) - np.pi


def delta_r(p1, p2):
    """
    Angular separation sqrt(dphi^2 + deta^2) between two objects
    exposing `eta` and `phi`.
    """
    deta = p1.eta - p2.eta
    dphi = delta_phi(p1.phi, p2.phi)
    return float(np.sqrt(deta**2 + dphi**2))


def scalar_sum_pt(particles):
    """
    Scalar sum of transverse momenta (HT when applied to jets).
    """
    return float(sum(p.pt for p in particles))
