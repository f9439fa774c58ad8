import warnings
from pathlib import Path

import numpy as np
import matplotlib.pyplot as plt
from matplotlib.collections import LineCollection

from closure import estimate_closure
from displacement import transform_points
from gradient import gradient_colors, rgb_to_hex
from parameters import (CurveParameters, DisplacementParameters, GradientSpec,
                        GuillocheParameters, LayerParameters, SweepParameters)
from roulettes import compute_point


EXPORT_SIZE = 800
# Stop positions of the exported gradient. They assume exactly four colors.
EXPORT_STOP_OFFSETS = (0, 0.33, 0.67, 1)


def sample_parameter(total_t, t_step):
    """
    Parameter values 0, t_step, 2*t_step, ... while t <= total_t.

    The values are accumulated (t += t_step) rather than multiplied so the
    sample count matches a running sum exactly. A non-positive step or a
    negative range gives no samples.
    """
    if not t_step > 0 or not total_t >= 0:
        return np.empty(0)
    samples = []
    t = 0.0
    while t <= total_t:
        samples.append(t)
        t += t_step
    return np.array(samples)


class Curve:
    """
    One layer of the drawing: its points in rendering coordinates plus the
    segment lengths used for arc-length coloring.

    Attributes:
    -----------
    layer_index : int
    curve_offset : float
        Shift applied to t for this layer, in radians.
    points : np.ndarray
        (N, 2) array of points.
    segment_lengths : np.ndarray
        (N-1,) Euclidean lengths of consecutive point pairs.
    total_length : float
        Sum of the segment lengths (0 for fewer than two points).
    """

    def __init__(self, layer_index, curve_offset, points):
        self.layer_index = layer_index
        self.curve_offset = curve_offset
        self.points = points
        if len(points) > 1:
            self.segment_lengths = np.hypot(*np.diff(points, axis=0).T)
        else:
            self.segment_lengths = np.empty(0)
        self._cumulative = np.cumsum(self.segment_lengths)
        self.total_length = float(self._cumulative[-1]) if len(self._cumulative) else 0.0

    @property
    def num_segments(self):
        return len(self.segment_lengths)

    def midpoint_positions(self):
        """Arc-length fraction of each segment's midpoint, in [0, 1]."""
        if self.total_length == 0:
            return np.zeros(self.num_segments)
        before = np.concatenate(([0.0], self._cumulative[:-1]))
        return (before + self.segment_lengths / 2) / self.total_length


class RecordingSurface:
    """Rendering surface that keeps every call, in order, as a tuple."""

    def __init__(self):
        self.calls = []

    def clear(self, width, height):
        self.calls.append(('clear', width, height))

    def set_stroke_width(self, width):
        self.calls.append(('stroke_width', width))

    def stroke_segment(self, p0, p1, color):
        self.calls.append(('segment', p0, p1, color))

    @property
    def segments(self):
        return [call[1:] for call in self.calls if call[0] == 'segment']


class MatplotlibSurface:
    """
    Rendering surface drawing onto a matplotlib Axes.

    Segments are collected between clear() and commit(), then added as a
    single LineCollection. The y axis is inverted so that coordinates match
    a canvas with its origin in the top-left corner.
    """

    def __init__(self, ax, background='#ffffff'):
        self.ax = ax
        self.background = background
        self.collection = None
        self._segments = []
        self._colors = []
        self._stroke_width = 1.0

    def clear(self, width, height):
        if self.collection is not None:
            self.collection.remove()
            self.collection = None
        self._segments = []
        self._colors = []
        self.ax.set_facecolor(self.background)
        self.ax.set_xlim(0, width)
        self.ax.set_ylim(height, 0)
        self.ax.set_aspect('equal', adjustable='box')
        self.ax.set_xticks([])
        self.ax.set_yticks([])

    def set_stroke_width(self, width):
        self._stroke_width = width

    def stroke_segment(self, p0, p1, color):
        self._segments.append((p0, p1))
        self._colors.append(color)

    def commit(self):
        """Pushes the collected segments to the axes and returns the LineCollection."""
        self.collection = LineCollection(self._segments, colors=self._colors,
                                         linewidths=self._stroke_width, capstyle='round')
        self.ax.add_collection(self.collection)
        return self.collection


class Guilloche:
    """
    Builds guilloche curves from a parameter snapshot and renders them either
    stroke by stroke onto a surface or as an SVG document.

    Each of the num_curves layers evaluates the roulette at t + offset*i for
    t swept over [0, t_range*2pi], moves the points through the rotation and
    polar displacement, and colors every segment by the arc-length position
    of its midpoint along a gradient repeated loop_count times.
    """

    def __init__(self, params=None, verbose=False):
        """
        Parameters:
        -----------
        params : GuillocheParameters, optional
            Snapshot to draw (default: GuillocheParameters()). Validated here,
            so the drawing methods can assume r != 0, t_step > 0 and at least
            two colors.
        verbose : bool, optional
            Print the curve family and closure estimate (default: False).

        Raises:
        -------
        InvalidParameters
            If the snapshot fails validation.
        """
        self.params = (params if params is not None else GuillocheParameters()).validate()
        curve = self.params.curve
        self.closure = estimate_closure(curve.R, curve.r, curve.d)

        if verbose:
            print(f"R={curve.R:g}, r={curve.r:g}, d={curve.d:g} traces a {curve.family}, "
                  f"closing after ~{self.closure} rotation(s).")
            if self.params.sweep.t_range_rotations < self.closure:
                print(f"t_range={self.params.sweep.t_range_rotations:g} rotation(s) is shorter "
                      f"than the closure estimate, the path will stay open.")

    def build_curve(self, layer_index, center):
        """Points and segment lengths of one layer, drawn around `center`."""
        curve, layers, sweep = self.params.curve, self.params.layers, self.params.sweep
        curve_offset = layers.offset_rad * layer_index
        t_vals = sample_parameter(sweep.total_t, sweep.t_step)

        x, y = compute_point(curve.R, curve.r, curve.d, t_vals + curve_offset)
        fx, fy = transform_points(x, y, center, layers.global_rotation_rad, self.params.displacement)
        points = np.column_stack((fx, fy))
        return Curve(layer_index, curve_offset, points)

    def build_curves(self, center):
        """All layers, in layer order."""
        return [self.build_curve(i, center) for i in range(self.params.layers.num_curves)]

    def segment_colors(self, curve):
        """(num_segments, 3) RGB rows, one per segment of `curve`."""
        gradient = self.params.gradient
        color_pos = np.mod(curve.midpoint_positions() * gradient.loop_count, 1)
        return gradient_colors(color_pos, gradient.colors)

    def draw(self, surface, width, height):
        """
        Immediate mode: clears `surface`, sets the stroke width once and
        strokes every segment of every layer in its own gradient color.
        """
        surface.clear(width, height)
        surface.set_stroke_width(self.params.thickness)
        center = (width / 2, height / 2)

        for curve in self.build_curves(center):
            if curve.num_segments == 0:
                warnings.warn(f"Layer {curve.layer_index} produced {len(curve.points)} point(s), "
                              f"nothing to draw.")
                continue
            colors = self.segment_colors(curve)
            points = curve.points.tolist()
            for i, color in enumerate(colors):
                surface.stroke_segment(tuple(points[i]), tuple(points[i + 1]), rgb_to_hex(color))

    def _stop_offsets(self):
        n = len(self.params.gradient.colors)
        if n == len(EXPORT_STOP_OFFSETS):
            return EXPORT_STOP_OFFSETS
        warnings.warn(f"SVG export expects 4 gradient colors, got {n}; "
                      f"spacing the stops evenly instead of at {list(EXPORT_STOP_OFFSETS)}.")
        return tuple(i / (n - 1) for i in range(n))

    @staticmethod
    def _points_to_path(points):
        """Closed SVG path through `points`, coordinates rounded to 3 decimals."""
        path = f"M {points[0][0]:.3f} {points[0][1]:.3f}"
        for p in points[1:]:
            path += f" L {p[0]:.3f} {p[1]:.3f}"
        path += " Z"
        return path

    def to_svg(self, size=EXPORT_SIZE):
        """
        Export mode: a standalone SVG document, size x size units, with one
        closed path per layer stroked by a repeating linear gradient.

        Unlike draw(), colors are not computed per segment. The whole drawing
        shares one gradient, scaled horizontally by loop_count and repeated.
        """
        gradient = self.params.gradient
        center = (size / 2, size / 2)

        svg_lines = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            f'<svg xmlns="http://www.w3.org/2000/svg" width="{size}" height="{size}">',
            '<defs>',
            f'  <linearGradient id="lineGradient" gradientUnits="userSpaceOnUse" '
            f'x1="0" y1="0" x2="1" y2="0" spreadMethod="repeat" '
            f'gradientTransform="scale({gradient.loop_count:g},1)">',
        ]
        for offset, color in zip(self._stop_offsets(), gradient.hex_colors):
            svg_lines.append(f'    <stop offset="{offset * 100:g}%" stop-color="{color}" />')
        svg_lines += ['  </linearGradient>', '</defs>']

        for curve in self.build_curves(center):
            if len(curve.points) == 0:
                warnings.warn(f"Layer {curve.layer_index} produced no points, skipping its path.")
                continue
            path = self._points_to_path(curve.points)
            svg_lines.append(f'<path d="{path}" stroke="url(#lineGradient)" fill="none" '
                             f'stroke-width="{self.params.thickness:g}" />')

        svg_lines.append('</svg>')
        return '\n'.join(svg_lines) + '\n'

    def save_svg(self, filepath='guilloche.svg', size=EXPORT_SIZE):
        """Writes to_svg() to `filepath` and returns the resolved Path."""
        filepath = Path(filepath)
        if filepath.suffix.lower() != '.svg':
            filepath = filepath.with_suffix('.svg')
        filepath.parent.mkdir(parents=True, exist_ok=True)
        filepath.write_text(self.to_svg(size), encoding='utf-8')
        return filepath.resolve()

    def plot(self, ax=None, width=EXPORT_SIZE, height=EXPORT_SIZE):
        """Immediate-mode preview on a matplotlib Axes. Returns the surface used."""
        if ax is None:
            _, ax = plt.subplots(figsize=(8, 8))
        surface = MatplotlibSurface(ax, background=self.params.background)
        self.draw(surface, width, height)
        surface.commit()
        curve = self.params.curve
        ax.set_title(f"{curve.family.capitalize()} (R={curve.R:g}, r={curve.r:g}, d={curve.d:g}), "
                     f"closure ~{self.closure}", fontsize=12)
        return surface

    def show(self, width=EXPORT_SIZE, height=EXPORT_SIZE):
        """Plots the drawing and opens the matplotlib window."""
        self.plot(width=width, height=height)
        plt.show()


if __name__ == "__main__":
    # --- Epitrochoid (d > r), single layer ---
    print("\nEpitrochoid with a four-color gradient...")
    epi = Guilloche(GuillocheParameters(curve=CurveParameters(R=200, r=60, d=80),
                                        sweep=SweepParameters(t_range_rotations=3, t_step=0.01)),
                    verbose=True)
    # epi.show()

    # --- Layered hypotrochoid with polar displacement, saved as SVG ---
    print("\nLayered hypotrochoid with polar displacement...")
    layered = Guilloche(GuillocheParameters(
        curve=CurveParameters(R=220, r=70, d=45),
        layers=LayerParameters(num_curves=12, offset_deg=30, global_rotation_deg=15),
        sweep=SweepParameters(t_range_rotations=7, t_step=0.01),
        displacement=DisplacementParameters(amplitude=20, frequency=8, phase_deg=0, exponent=0.5),
        gradient=GradientSpec(colors=['#1b3a6b', '#2f9e8f', '#f2c14e', '#c8553d'], loop_count=3),
        thickness=0.6),
        verbose=True)
    saved = layered.save_svg(Path("EXPORTS") / "layered_hypotrochoid.svg")
    print(f"Saved SVG to {saved}")
    # layered.show()

    # --- Epicycloid (d == r) from a control snapshot ---
    print("\nEpicycloid from a control snapshot...")
    snapshot = {'R': '150', 'r': '50', 'd': '50', 'num_curves': '6', 'offset': '10',
                't_range': '1', 't_step': '0.005', 'gradientLoops': '2',
                'color1': '#000000', 'color2': '#ffffff'}
    epicycloid = Guilloche(GuillocheParameters.from_mapping(snapshot), verbose=True)
    # epicycloid.show()
