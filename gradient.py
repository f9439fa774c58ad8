import math
import re

import numpy as np


_HEX_COLOR = re.compile(r'^#?([0-9a-fA-F]{6})$')


def hex_to_rgb(color):
    """'#rrggbb' (leading '#' optional) -> (r, g, b) ints in 0..255."""
    match = _HEX_COLOR.match(color.strip())
    if match is None:
        raise ValueError(f"Expected a '#rrggbb' color, got {color!r}.")
    value = match.group(1)
    return (int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16))


def rgb_to_hex(rgb):
    """(r, g, b) -> '#rrggbb'."""
    return '#' + ''.join(f"{int(c):02x}" for c in rgb)


def to_rgb(color):
    """Accepts a hex string or an RGB triple and returns an RGB tuple of ints."""
    if isinstance(color, str):
        return hex_to_rgb(color)
    channels = tuple(int(c) for c in color)
    if len(channels) != 3:
        raise ValueError(f"Expected an (r, g, b) triple, got {color!r}.")
    if any(c < 0 or c > 255 for c in channels):
        raise ValueError(f"RGB channels must lie in 0..255, got {color!r}.")
    return channels


def _round_half_up(value):
    return math.floor(value + 0.5)


def interpolate_color(color1, color2, t):
    """Linear blend of two RGB triples, each channel rounded half-up."""
    return tuple(_round_half_up(c1 + (c2 - c1) * t) for c1, c2 in zip(color1, color2))


def get_gradient_color(t, colors):
    """
    Color at position t along a gradient of equally spaced stops.

    Parameters:
    -----------
    t : float
        Position in [0, 1]. Values above 1 are clamped; negative values are
        not, callers feed the result of a modulo which is never negative.
    colors : sequence of (r, g, b)
        At least two stops, spaced evenly over [0, 1].

    Returns:
    --------
    tuple (int, int, int)
    """
    n = len(colors)
    if t >= 1:
        t = 1
    segment = 1 / (n - 1)
    index = math.floor(t / segment)
    # t == 1 would otherwise land past the last segment
    if index >= n - 1:
        index = n - 2
    t_local = (t - index * segment) / segment
    return interpolate_color(colors[index], colors[index + 1], t_local)


def gradient_colors(positions, colors):
    """
    Vectorised get_gradient_color over an array of positions.

    Returns an (N, 3) integer array, row i matching
    get_gradient_color(positions[i], colors).
    """
    stops = np.asarray(colors, dtype=float)
    n = len(stops)
    t = np.minimum(np.atleast_1d(np.asarray(positions, dtype=float)), 1.0)
    segment = 1 / (n - 1)
    index = np.minimum(np.floor(t / segment), n - 2).astype(int)
    t_local = (t - index * segment) / segment
    start = stops[index]
    end = stops[index + 1]
    blended = start + (end - start) * t_local[:, np.newaxis]
    return np.floor(blended + 0.5).astype(int)
