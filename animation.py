import math
import time
from pathlib import Path

import matplotlib.pyplot as plt
from matplotlib.animation import FuncAnimation
from tqdm import tqdm

from guilloche import EXPORT_SIZE, Guilloche, MatplotlibSurface
from parameters import GuillocheParameters


PERIOD_MS = 5000 # One full phase/amplitude cycle
AMPLITUDE_SWING = 30


def animation_offsets(elapsed_ms, period_ms=PERIOD_MS):
    """
    Phase and amplitude offsets of the displacement at a given time.

    Returns:
    --------
    tuple (float, float)
        (phase offset in degrees, amplitude offset). The phase sweeps
        0..360 degrees once per period; the amplitude swings by
        +-AMPLITUDE_SWING on a sine of the same period.
    """
    fraction = (elapsed_ms % period_ms) / period_ms
    return fraction * 360, AMPLITUDE_SWING * math.sin(fraction * 2 * math.pi)


def animated_parameters(params, elapsed_ms, period_ms=PERIOD_MS):
    """Copy of `params` with the animation offsets added to the displacement."""
    phase_offset, amplitude_offset = animation_offsets(elapsed_ms, period_ms)
    return params.with_displacement(params.displacement.with_offsets(phase_offset, amplitude_offset))


class GuillocheAnimation:
    """
    Animates the polar displacement of a guilloche drawing.

    Every frame rebuilds the whole drawing from the base parameters plus the
    offsets for that frame's elapsed time, and redraws it over the previous
    frame. Nothing carries over between frames.
    """

    def __init__(self, params=None, period_ms=PERIOD_MS, interval_ms=40, num_frames=None,
                 realtime=False, save_anim=False, filename=None,
                 width=EXPORT_SIZE, height=EXPORT_SIZE):
        """
        Parameters:
        -----------
        params : GuillocheParameters, optional
            Base parameters (default: GuillocheParameters()).
        period_ms : float, optional
            Length of one animation cycle in milliseconds (default: 5000).
        interval_ms : int, optional
            Delay between frames in milliseconds (default: 40).
        num_frames : int, optional
            Frames to produce. Defaults to one full period.
        realtime : bool, optional
            Take elapsed time from the wall clock instead of frame * interval
            (default: False). Saved animations always use frame * interval.
        save_anim : bool, optional
            Save to a file instead of showing a window (default: False).
        filename : str, optional
            Output name, '.gif' (pillow) or '.mp4' (ffmpeg). Generated from
            the curve parameters when omitted.
        width, height : int, optional
            Size of the drawing area (default: 800 x 800).
        """
        self.params = params if params is not None else GuillocheParameters()
        # Fail on bad base parameters before any figure exists
        self.params.validate()
        self.period_ms = float(period_ms)
        self.interval_ms = max(1, int(interval_ms))
        if num_frames is None:
            num_frames = math.ceil(self.period_ms / self.interval_ms)
        self.num_frames = max(1, int(num_frames))
        self.realtime = bool(realtime)
        self.save_anim = bool(save_anim)
        self.filename = filename
        self.width = width
        self.height = height

        if self.save_anim and self.filename is None:
            curve = self.params.curve
            self.filename = f"guilloche_R{curve.R:g}_r{curve.r:g}_d{curve.d:g}".replace('.', 'p') + ".gif"

        self.fig = None
        self.ax = None
        self.surface = None
        self.anim = None
        self._start = None

    def elapsed_ms(self, frame):
        """Elapsed time for `frame`, in milliseconds."""
        if self.realtime and not self.save_anim:
            if self._start is None:
                self._start = time.monotonic()
            return (time.monotonic() - self._start) * 1000
        return frame * self.interval_ms

    def render_frame(self, frame):
        """Redraws the surface for one frame and returns the changed artists."""
        elapsed = self.elapsed_ms(frame)
        guilloche = Guilloche(animated_parameters(self.params, elapsed, self.period_ms))
        guilloche.draw(self.surface, self.width, self.height)
        collection = self.surface.commit()
        self.ax.set_title(f"Guilloche, closure ~{guilloche.closure}, t={elapsed / 1000:.2f}s",
                          fontsize=12)
        return [collection]

    def _setup_plot(self):
        self.fig, self.ax = plt.subplots(figsize=(8, 8))
        self.fig.subplots_adjust(left=0.05, right=0.95, top=0.92, bottom=0.05)
        self.surface = MatplotlibSurface(self.ax, background=self.params.background)

    def export_svg(self, filepath='guilloche.svg', elapsed_ms=0):
        """Saves the drawing as it looks at `elapsed_ms` into the animation."""
        return Guilloche(animated_parameters(self.params, elapsed_ms, self.period_ms)).save_svg(filepath)

    def stop(self):
        """Stops scheduling further frames. The frame on screen stays."""
        if self.anim is not None and self.anim.event_source is not None:
            self.anim.event_source.stop()

    def generate_animation(self):
        """Creates and shows or saves the animation. Returns the FuncAnimation."""
        self._setup_plot()
        self.anim = FuncAnimation(self.fig, self.render_frame, frames=self.num_frames,
                                  interval=self.interval_ms, blit=False,
                                  repeat=not self.save_anim)

        if not self.save_anim:
            plt.show()
            return self.anim

        if not self.filename.lower().endswith(('.gif', '.mp4')):
            self.filename += '.gif'
        save_dir = Path("ANIMATIONS/GUILLOCHE")
        save_dir.mkdir(parents=True, exist_ok=True)
        filepath = save_dir / self.filename

        print(f"Saving animation to {filepath.resolve()}...")
        writer_choice = 'pillow' if self.filename.lower().endswith('.gif') else 'ffmpeg'
        try:
            with tqdm(total=self.num_frames, desc="Saving Animation", unit="frame", ncols=100) as pbar:
                def progress_update(current_frame, total_frames):
                    pbar.n = current_frame + 1
                    pbar.refresh()

                self.anim.save(str(filepath), writer=writer_choice,
                               fps=max(1, round(1000 / self.interval_ms)),
                               dpi=100, progress_callback=progress_update)
            print("\nAnimation saved successfully!")
        except (OSError, RuntimeError, ValueError):
            print("\nError saving animation. Ensure 'ffmpeg' (for MP4) or 'Pillow' (for GIF) is installed.")
            raise
        finally:
            plt.close(self.fig)
        return self.anim


if __name__ == "__main__":
    from parameters import CurveParameters, DisplacementParameters, LayerParameters, SweepParameters

    base = GuillocheParameters(
        curve=CurveParameters(R=200, r=60, d=80),
        layers=LayerParameters(num_curves=4, offset_deg=15),
        sweep=SweepParameters(t_range_rotations=3, t_step=0.02),
        displacement=DisplacementParameters(amplitude=10, frequency=6, exponent=1.5))

    print("\nShowing live animation...")
    live = GuillocheAnimation(base, realtime=True)
    # live.generate_animation()

    print("\nSaving one period as a GIF...")
    saved = GuillocheAnimation(base, interval_ms=100, save_anim=True)
    # saved.generate_animation()
