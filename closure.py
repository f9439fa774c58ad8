"""
Closure estimate for roulette curves.

A roulette retraces itself once the rolling circle has turned a whole number
of times while its centre has completed a whole number of orbits. With the
generating ratio n = p/q in lowest terms that happens after q orbits.

The search below is a linear scan over denominators, not a continued
fraction expansion: it returns the best denominator found in the window
1..max_denom, which is an approximation of the true closure period for
ratios that are irrational or need a larger denominator.
"""
import math
from fractions import Fraction

import numpy as np


MAX_DENOMINATOR = 1000
TOLERANCE = 1e-6


def generating_ratio(R, r, d):
    """Ratio between the pen's angular speed and the orbit speed: (R-r)/r inside, (R+r)/r outside."""
    with np.errstate(divide='ignore', invalid='ignore'):
        if d < r:
            return float(np.divide(R - r, r))
        return float(np.divide(R + r, r))


def _best_pair(x, max_denom, tolerance):
    best_num, best_denom = 1, 1
    best_error = abs(x - best_num / best_denom)
    for denom in range(1, max_denom + 1):
        num = math.floor(x * denom + 0.5)
        error = abs(x - num / denom)
        if error < best_error:
            best_error = error
            best_num = num
            best_denom = denom
        if error < tolerance:
            break
    return best_num, best_denom


def closure_fraction(ratio, max_denom=MAX_DENOMINATOR, tolerance=TOLERANCE):
    """
    Best rational approximation p/q of `ratio` with q <= max_denom.

    Scanning stops at the first denominator whose error drops below
    `tolerance`. Non-finite ratios keep the starting guess 1/1.
    """
    if not math.isfinite(ratio):
        return Fraction(1, 1)
    num, denom = _best_pair(ratio, max_denom, tolerance)
    # Fraction reduces by the gcd
    return Fraction(num, denom)


def approximate_closure(ratio, max_denom=MAX_DENOMINATOR, tolerance=TOLERANCE):
    """Reduced denominator of the best approximation, i.e. the number of orbits to close."""
    return closure_fraction(ratio, max_denom, tolerance).denominator


def estimate_closure(R, r, d, max_denom=MAX_DENOMINATOR):
    """Number of outer rotations after which the (R, r, d) curve approximately closes."""
    return approximate_closure(generating_ratio(R, r, d), max_denom)
