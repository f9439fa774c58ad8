import numpy as np


EPSILON = 1e-4 # Tolerance for treating d == r as an epicycloid

EPICYCLOID = 'epicycloid'
HYPOTROCHOID = 'hypotrochoid'
EPITROCHOID = 'epitrochoid'


def curve_family(r, d):
    """
    Selects the roulette family traced by a pen at distance d from the centre
    of a rolling circle of radius r.

    Exactly one family is returned for any (r, d):
    - |d - r| < EPSILON : epicycloid (pen on the circumference, rolling outside)
    - d < r             : hypotrochoid (pen inside, rolling inside)
    - otherwise         : epitrochoid (pen outside, rolling outside)
    """
    if abs(d - r) < EPSILON:
        return EPICYCLOID
    if d < r:
        return HYPOTROCHOID
    return EPITROCHOID


def compute_point(R, r, d, t_eff):
    """
    Calculates the curve-local point(s) of the roulette selected by (r, d).

    Parameters:
    -----------
    R : float
        Radius of the fixed circle.
    r : float
        Radius of the rolling circle. Must be non-zero, r = 0 yields
        non-finite coordinates.
    d : float
        Distance of the pen from the rolling circle's centre.
    t_eff : float or np.ndarray
        Parameter value(s) in radians, already shifted by the layer offset.

    Returns:
    --------
    tuple (float or np.ndarray, float or np.ndarray)
        x and y coordinates, centred on the fixed circle.
    """
    family = curve_family(r, d)
    with np.errstate(divide='ignore', invalid='ignore'):
        if family == EPICYCLOID:
            k = np.divide(R + r, r)
            x = (R + r) * np.cos(t_eff) - r * np.cos(k * t_eff)
            y = (R + r) * np.sin(t_eff) - r * np.sin(k * t_eff)
        elif family == HYPOTROCHOID:
            k = np.divide(R - r, r)
            x = (R - r) * np.cos(t_eff) + d * np.cos(k * t_eff)
            y = (R - r) * np.sin(t_eff) - d * np.sin(k * t_eff)
        else:
            k = np.divide(R + r, r)
            x = (R + r) * np.cos(t_eff) - d * np.cos(k * t_eff)
            y = (R + r) * np.sin(t_eff) - d * np.sin(k * t_eff)
    return x, y
