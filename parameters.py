"""
Parameter groups for a guilloche drawing.

Each render or export call receives one GuillocheParameters snapshot and
reads nothing else. Instances are treated as read-only: helpers that change
a value (e.g. the animation offsets) return a new object.
"""
import math

from gradient import to_rgb, rgb_to_hex
from roulettes import curve_family


DEFAULTS = {
    'R': 200.0,
    'r': 60.0,
    'd': 80.0,
    'num_curves': 1,
    'offset': 0.0,
    't_range': 6.0,
    't_step': 0.01,
    'rotation': 0.0,
    'thickness': 1.0,
    'gradientLoops': 1.0,
    'colors': ('#ff0000', '#00ff00', '#0000ff', '#ffff00'),
    'dispAmp': 0.0,
    'dispFreq': 6.0,
    'dispPhase': 0.0,
    'dispExp': 1.0,
    'canvasBg': '#ffffff',
}


class InvalidParameters(ValueError):
    """Raised when a parameter snapshot cannot produce a drawing."""


class CurveParameters:
    """Fixed radius R, rolling radius r and pen offset d. The family is derived from r and d."""

    def __init__(self, R=DEFAULTS['R'], r=DEFAULTS['r'], d=DEFAULTS['d']):
        self.R = float(R)
        self.r = float(r)
        self.d = float(d)

    @property
    def family(self):
        return curve_family(self.r, self.d)

    def __repr__(self):
        return f"CurveParameters(R={self.R}, r={self.r}, d={self.d})"


class LayerParameters:
    """num_curves copies of the curve, layer i shifted by offset_deg * i in t."""

    def __init__(self, num_curves=DEFAULTS['num_curves'], offset_deg=DEFAULTS['offset'],
                 global_rotation_deg=DEFAULTS['rotation']):
        self.num_curves = int(num_curves)
        self.offset_deg = float(offset_deg)
        self.global_rotation_deg = float(global_rotation_deg)

    @property
    def offset_rad(self):
        return math.radians(self.offset_deg)

    @property
    def global_rotation_rad(self):
        return math.radians(self.global_rotation_deg)


class SweepParameters:
    """t sampled over [0, t_range_rotations * 2pi] every t_step."""

    def __init__(self, t_range_rotations=DEFAULTS['t_range'], t_step=DEFAULTS['t_step']):
        self.t_range_rotations = float(t_range_rotations)
        self.t_step = float(t_step)

    @property
    def total_t(self):
        return self.t_range_rotations * 2 * math.pi


class DisplacementParameters:
    """Polar displacement: radius += sign(s) * |s|**exponent * amplitude, s = sin(frequency*angle + phase)."""

    def __init__(self, amplitude=DEFAULTS['dispAmp'], frequency=DEFAULTS['dispFreq'],
                 phase_deg=DEFAULTS['dispPhase'], exponent=DEFAULTS['dispExp']):
        self.amplitude = float(amplitude)
        self.frequency = float(frequency)
        self.phase_deg = float(phase_deg)
        self.exponent = float(exponent)

    @property
    def phase_rad(self):
        return math.radians(self.phase_deg)

    def with_offsets(self, phase_offset_deg=0.0, amplitude_offset=0.0):
        """New parameters with the offsets added to phase and amplitude."""
        return DisplacementParameters(amplitude=self.amplitude + amplitude_offset,
                                      frequency=self.frequency,
                                      phase_deg=self.phase_deg + phase_offset_deg,
                                      exponent=self.exponent)

    def __repr__(self):
        return (f"DisplacementParameters(amplitude={self.amplitude}, frequency={self.frequency}, "
                f"phase_deg={self.phase_deg}, exponent={self.exponent})")


class GradientSpec:
    """
    Ordered color stops, evenly spaced over [0, 1], repeated loop_count times
    along each curve's arc length.

    Colors may be given as '#rrggbb' strings or (r, g, b) triples; they are
    stored as RGB tuples.
    """

    def __init__(self, colors=DEFAULTS['colors'], loop_count=DEFAULTS['gradientLoops']):
        try:
            self.colors = tuple(to_rgb(c) for c in colors)
        except (TypeError, ValueError) as e:
            raise InvalidParameters(f"Invalid gradient color: {e}") from e
        self.loop_count = float(loop_count)

    @property
    def hex_colors(self):
        return [rgb_to_hex(c) for c in self.colors]


class GuillocheParameters:
    """
    Complete snapshot of everything a drawing depends on.

    Parameters:
    -----------
    curve : CurveParameters
    layers : LayerParameters
    sweep : SweepParameters
    displacement : DisplacementParameters
    gradient : GradientSpec
    thickness : float, optional
        Stroke width (default: 1).
    background : str, optional
        Canvas background color (default: '#ffffff').
    """

    def __init__(self, curve=None, layers=None, sweep=None, displacement=None, gradient=None,
                 thickness=DEFAULTS['thickness'], background=DEFAULTS['canvasBg']):
        self.curve = curve if curve is not None else CurveParameters()
        self.layers = layers if layers is not None else LayerParameters()
        self.sweep = sweep if sweep is not None else SweepParameters()
        self.displacement = displacement if displacement is not None else DisplacementParameters()
        self.gradient = gradient if gradient is not None else GradientSpec()
        self.thickness = float(thickness)
        self.background = background

    @classmethod
    def from_mapping(cls, values):
        """
        Builds parameters from a flat control snapshot.

        Keys follow DEFAULTS ('R', 'r', 'd', 'num_curves', 'offset', 't_range',
        't_step', 'rotation', 'thickness', 'gradientLoops', 'dispAmp',
        'dispFreq', 'dispPhase', 'dispExp', 'canvasBg'). Colors come either as
        a 'colors' sequence or as 'color1', 'color2', ... in order. Values may
        be strings, as read from form controls; missing keys use DEFAULTS.
        """
        merged = dict(DEFAULTS)
        merged.update(values)

        numbered = sorted((k for k in values if k.startswith('color') and k[5:].isdigit()),
                          key=lambda k: int(k[5:]))
        colors = [values[k] for k in numbered] if numbered else list(merged['colors'])

        try:
            # int(float(...)) accepts '3' as well as '3.0', like parseInt on a slider value
            return cls(
                curve=CurveParameters(R=merged['R'], r=merged['r'], d=merged['d']),
                layers=LayerParameters(num_curves=int(float(merged['num_curves'])),
                                       offset_deg=merged['offset'],
                                       global_rotation_deg=merged['rotation']),
                sweep=SweepParameters(t_range_rotations=merged['t_range'], t_step=merged['t_step']),
                displacement=DisplacementParameters(amplitude=merged['dispAmp'],
                                                    frequency=merged['dispFreq'],
                                                    phase_deg=merged['dispPhase'],
                                                    exponent=merged['dispExp']),
                gradient=GradientSpec(colors=colors, loop_count=merged['gradientLoops']),
                thickness=merged['thickness'],
                background=merged['canvasBg'],
            )
        except InvalidParameters:
            raise
        except (TypeError, ValueError) as e:
            raise InvalidParameters(f"Could not parse parameters: {e}") from e

    def with_displacement(self, displacement):
        """Copy of these parameters using a different displacement."""
        return GuillocheParameters(curve=self.curve, layers=self.layers, sweep=self.sweep,
                                   displacement=displacement, gradient=self.gradient,
                                   thickness=self.thickness, background=self.background)

    def validate(self):
        """
        Rejects snapshots the drawing pipeline cannot handle.

        Raises:
        -------
        InvalidParameters
            If any number is non-finite, r == 0, t_step <= 0,
            t_range_rotations <= 0, num_curves < 1, fewer than two colors,
            loop_count < 0, exponent < 0 or the background is not a '#rrggbb' color.
        """
        numbers = {
            'R': self.curve.R, 'r': self.curve.r, 'd': self.curve.d,
            'offset': self.layers.offset_deg, 'rotation': self.layers.global_rotation_deg,
            't_range': self.sweep.t_range_rotations, 't_step': self.sweep.t_step,
            'dispAmp': self.displacement.amplitude, 'dispFreq': self.displacement.frequency,
            'dispPhase': self.displacement.phase_deg, 'dispExp': self.displacement.exponent,
            'gradientLoops': self.gradient.loop_count, 'thickness': self.thickness,
        }
        for name, value in numbers.items():
            if not math.isfinite(value):
                raise InvalidParameters(f"Parameter '{name}' must be finite, got {value}.")

        if self.curve.r == 0:
            raise InvalidParameters("Rolling radius 'r' must be non-zero.")
        if self.sweep.t_step <= 0:
            raise InvalidParameters(f"Sampling step 't_step' must be positive, got {self.sweep.t_step}.")
        if self.sweep.t_range_rotations <= 0:
            raise InvalidParameters(
                f"Sweep 't_range' must be positive, got {self.sweep.t_range_rotations}.")
        if self.layers.num_curves < 1:
            raise InvalidParameters(f"'num_curves' must be at least 1, got {self.layers.num_curves}.")
        if len(self.gradient.colors) < 2:
            raise InvalidParameters(
                f"A gradient needs at least 2 colors, got {len(self.gradient.colors)}.")
        if self.displacement.exponent < 0:
            raise InvalidParameters(
                f"'dispExp' must not be negative, got {self.displacement.exponent}.")
        if self.gradient.loop_count < 0:
            raise InvalidParameters(
                f"'gradientLoops' must not be negative, got {self.gradient.loop_count}.")
        try:
            to_rgb(self.background)
        except (TypeError, ValueError) as e:
            raise InvalidParameters(f"Invalid background color: {e}") from e
        return self
