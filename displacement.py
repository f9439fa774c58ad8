import numpy as np


def rotate_about(x, y, center, angle):
    """Rotates point(s) (x, y) about `center` by `angle` radians."""
    cx, cy = center
    dx = x - cx
    dy = y - cy
    cos_a = np.cos(angle)
    sin_a = np.sin(angle)
    return cx + dx * cos_a - dy * sin_a, cy + dx * sin_a + dy * cos_a


def radial_modulation(angle, displacement):
    """
    Radius offset of the polar displacement at the given polar angle(s).

    mod = sign(s) * |s|**exponent * amplitude, with s = sin(frequency*angle + phase).
    The power is taken of |s| so fractional exponents never see a negative base;
    the sign of s is restored afterwards. Where s == 0 the offset is 0 for
    every exponent, including negative ones.
    """
    s = np.sin(displacement.frequency * angle + displacement.phase_rad)
    with np.errstate(divide='ignore', invalid='ignore'):
        mod = np.sign(s) * np.power(np.abs(s), displacement.exponent) * displacement.amplitude
    return np.where(s == 0, 0.0, mod)


def transform_points(x, y, center, rotation, displacement):
    """
    Moves curve-local point(s) into the rendering space.

    Parameters:
    -----------
    x, y : float or np.ndarray
        Curve-local coordinates (origin at the fixed circle's centre).
    center : tuple (float, float)
        Centre of the drawing in rendering coordinates.
    rotation : float
        Global rotation in radians, applied about the centre.
    displacement : DisplacementParameters
        Anything with amplitude, frequency, phase_rad and exponent attributes.

    Returns:
    --------
    tuple (np.ndarray, np.ndarray)
        Final x and y coordinates. Only the radius is perturbed; each point
        keeps the polar angle it had after rotation.
    """
    cx, cy = center
    # Translate, then rotate about the centre
    rx, ry = rotate_about(np.asarray(x, dtype=float) + cx, np.asarray(y, dtype=float) + cy,
                          center, rotation)

    # Polar coordinates relative to the centre
    angle = np.arctan2(ry - cy, rx - cx)
    r_orig = np.hypot(rx - cx, ry - cy)

    # Only the radius is perturbed
    new_r = r_orig + radial_modulation(angle, displacement)
    return cx + new_r * np.cos(angle), cy + new_r * np.sin(angle)
