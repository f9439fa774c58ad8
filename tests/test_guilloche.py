import re
import unittest
import warnings
import xml.etree.ElementTree as ET

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np

from guilloche import (EXPORT_STOP_OFFSETS, Curve, Guilloche, MatplotlibSurface,
                       RecordingSurface, sample_parameter)
from roulettes import compute_point
from parameters import (CurveParameters, DisplacementParameters, GradientSpec,
                        GuillocheParameters, LayerParameters, SweepParameters)


SVG_NS = {'svg': 'http://www.w3.org/2000/svg'}


def make_params(num_curves=1, offset_deg=0, rotation=0, t_range=6, t_step=0.01,
                amplitude=0, colors=('#ff0000', '#00ff00', '#0000ff', '#ffff00'), loops=1,
                R=200, r=60, d=80):
    return GuillocheParameters(
        curve=CurveParameters(R=R, r=r, d=d),
        layers=LayerParameters(num_curves=num_curves, offset_deg=offset_deg,
                               global_rotation_deg=rotation),
        sweep=SweepParameters(t_range_rotations=t_range, t_step=t_step),
        displacement=DisplacementParameters(amplitude=amplitude, frequency=6, phase_deg=0, exponent=1),
        gradient=GradientSpec(colors=colors, loop_count=loops),
        thickness=1.5)


class TestSampleParameter(unittest.TestCase):
    def test_includes_zero_and_accumulates(self):
        samples = sample_parameter(1.0, 0.25)
        np.testing.assert_allclose(samples, [0, 0.25, 0.5, 0.75, 1.0])

    def test_no_samples_for_bad_step(self):
        self.assertEqual(len(sample_parameter(1.0, 0)), 0)
        self.assertEqual(len(sample_parameter(1.0, -0.1)), 0)
        self.assertEqual(len(sample_parameter(float('nan'), 0.1)), 0)

    def test_step_larger_than_range_gives_one_sample(self):
        self.assertEqual(len(sample_parameter(0.5, 1.0)), 1)


class TestCurve(unittest.TestCase):
    def test_lengths(self):
        curve = Curve(0, 0.0, np.array([[0.0, 0.0], [3.0, 4.0], [3.0, 0.0]]))
        np.testing.assert_allclose(curve.segment_lengths, [5.0, 4.0])
        self.assertAlmostEqual(curve.total_length, 9.0)
        np.testing.assert_allclose(curve.midpoint_positions(), [2.5 / 9, 7.0 / 9])

    def test_degenerate_curves(self):
        self.assertEqual(Curve(0, 0.0, np.empty((0, 2))).num_segments, 0)
        single = Curve(0, 0.0, np.array([[1.0, 1.0]]))
        self.assertEqual(single.num_segments, 0)
        self.assertEqual(single.total_length, 0.0)

    def test_zero_length_maps_to_start(self):
        curve = Curve(0, 0.0, np.array([[1.0, 1.0], [1.0, 1.0]]))
        np.testing.assert_array_equal(curve.midpoint_positions(), [0.0])


class TestBuildCurves(unittest.TestCase):
    def test_first_point_of_epitrochoid(self):
        guilloche = Guilloche(make_params())
        curve = guilloche.build_curve(0, (400, 400))
        np.testing.assert_allclose(curve.points[0], [580.0, 400.0])
        self.assertEqual(guilloche.params.curve.family, 'epitrochoid')

    def test_layer_offset_shifts_t(self):
        guilloche = Guilloche(make_params(num_curves=3, offset_deg=90))
        curves = guilloche.build_curves((0, 0))
        self.assertEqual(len(curves), 3)
        self.assertAlmostEqual(curves[2].curve_offset, np.pi)
        x, y = (260 * np.cos(np.pi) - 80 * np.cos(260 / 60 * np.pi),
                260 * np.sin(np.pi) - 80 * np.sin(260 / 60 * np.pi))
        np.testing.assert_allclose(curves[2].points[0], [x, y], atol=1e-9)

    def test_single_layer_without_offset(self):
        guilloche = Guilloche(make_params(num_curves=1, offset_deg=45))
        curves = guilloche.build_curves((0, 0))
        self.assertEqual(len(curves), 1)
        self.assertEqual(curves[0].curve_offset, 0.0)
        np.testing.assert_allclose(curves[0].points[0], [180.0, 0.0], atol=1e-9)

    def test_sample_count(self):
        curve = Guilloche(make_params(t_range=1, t_step=0.5)).build_curve(0, (0, 0))
        self.assertEqual(len(curve.points), len(sample_parameter(2 * np.pi, 0.5)))

    def test_closes_after_closure_estimate(self):
        # 260/60 = 13/3, three rotations bring the pen back to its start
        guilloche = Guilloche(make_params())
        self.assertEqual(guilloche.closure, 3)
        start = compute_point(200, 60, 80, 0.0)
        end = compute_point(200, 60, 80, guilloche.closure * 2 * np.pi)
        np.testing.assert_allclose(end, start, atol=1e-9)

    def test_shorter_sweep_stays_open(self):
        points = Guilloche(make_params(t_range=1, t_step=0.01)).build_curve(0, (0, 0)).points
        self.assertGreater(np.hypot(*(points[-1] - points[0])), 1.0)

    def test_deterministic(self):
        params = make_params(num_curves=2, offset_deg=20, amplitude=12, loops=3)
        first, second = Guilloche(params), Guilloche(params)
        a, b = first.build_curves((400, 400)), second.build_curves((400, 400))
        for ca, cb in zip(a, b):
            np.testing.assert_array_equal(ca.points, cb.points)
            np.testing.assert_array_equal(first.segment_colors(ca), second.segment_colors(cb))


class TestSegmentColors(unittest.TestCase):
    def test_one_color_per_segment(self):
        guilloche = Guilloche(make_params())
        curve = guilloche.build_curve(0, (400, 400))
        colors = guilloche.segment_colors(curve)
        self.assertEqual(colors.shape, (curve.num_segments, 3))
        # the first midpoint is close to 0, the last close to 1
        np.testing.assert_array_equal(colors[0], [255, 0, 0])
        np.testing.assert_array_equal(colors[-1], [255, 255, 0])

    def test_loop_count_repeats_gradient(self):
        guilloche = Guilloche(make_params(loops=2))
        curve = guilloche.build_curve(0, (400, 400))
        colors = guilloche.segment_colors(curve)
        half = curve.num_segments // 2
        # just past half-way the gradient starts over at the first stop
        pos = curve.midpoint_positions()
        restart = int(np.argmax(pos * 2 >= 1))
        self.assertTrue(abs(restart - half) <= 5)
        self.assertEqual(tuple(colors[restart]), (255, 0, 0))

    def test_zero_loops_uses_first_color(self):
        guilloche = Guilloche(make_params(loops=0))
        colors = guilloche.segment_colors(guilloche.build_curve(0, (0, 0)))
        self.assertTrue(np.all(colors == [255, 0, 0]))


class TestDraw(unittest.TestCase):
    def test_call_order(self):
        guilloche = Guilloche(make_params(num_curves=2, offset_deg=10, t_range=1, t_step=0.1))
        surface = RecordingSurface()
        guilloche.draw(surface, 800, 600)

        self.assertEqual(surface.calls[0], ('clear', 800, 600))
        self.assertEqual(surface.calls[1], ('stroke_width', 1.5))
        kinds = [call[0] for call in surface.calls[2:]]
        self.assertEqual(set(kinds), {'segment'})

        curves = guilloche.build_curves((400, 300))
        self.assertEqual(len(surface.segments), sum(c.num_segments for c in curves))
        p0, p1, color = surface.segments[0]
        np.testing.assert_allclose(p0, curves[0].points[0])
        np.testing.assert_allclose(p1, curves[0].points[1])
        self.assertRegex(color, r'^#[0-9a-f]{6}$')
        # the second layer starts where its own curve starts
        first_of_second = surface.segments[curves[0].num_segments]
        np.testing.assert_allclose(first_of_second[0], curves[1].points[0])

    def test_segments_are_contiguous(self):
        surface = RecordingSurface()
        Guilloche(make_params(t_range=1, t_step=0.05)).draw(surface, 400, 400)
        for (_, end, _), (start, _, _) in zip(surface.segments, surface.segments[1:]):
            self.assertEqual(end, start)

    def test_matplotlib_surface(self):
        fig, ax = plt.subplots()
        try:
            surface = Guilloche(make_params(t_range=1, t_step=0.05)).plot(ax=ax)
            self.assertIsInstance(surface, MatplotlibSurface)
            self.assertIn(surface.collection, ax.collections)
            self.assertEqual(len(surface.collection.get_segments()), len(surface._segments))
            self.assertEqual(ax.get_ylim(), (800.0, 0.0))

            # redrawing replaces the previous strokes
            Guilloche(make_params(t_range=1, t_step=0.1)).draw(surface, 800, 800)
            surface.commit()
            self.assertEqual(len(ax.collections), 1)
        finally:
            plt.close(fig)


class TestSvgExport(unittest.TestCase):
    def test_document_structure(self):
        svg = Guilloche(make_params(num_curves=3, offset_deg=30, loops=2.5)).to_svg()
        root = ET.fromstring(svg.encode('utf-8'))
        self.assertEqual((root.get('width'), root.get('height')), ('800', '800'))

        gradient = root.find('svg:defs/svg:linearGradient', SVG_NS)
        self.assertEqual(gradient.get('id'), 'lineGradient')
        self.assertEqual(gradient.get('spreadMethod'), 'repeat')
        self.assertEqual(gradient.get('gradientTransform'), 'scale(2.5,1)')
        stops = gradient.findall('svg:stop', SVG_NS)
        self.assertEqual([s.get('offset') for s in stops], ['0%', '33%', '67%', '100%'])
        self.assertEqual([s.get('stop-color') for s in stops],
                         ['#ff0000', '#00ff00', '#0000ff', '#ffff00'])

        paths = root.findall('svg:path', SVG_NS)
        self.assertEqual(len(paths), 3)
        for path in paths:
            self.assertTrue(path.get('d').startswith('M '))
            self.assertTrue(path.get('d').endswith(' Z'))
            self.assertEqual(path.get('stroke'), 'url(#lineGradient)')
            self.assertEqual(path.get('fill'), 'none')
            self.assertEqual(path.get('stroke-width'), '1.5')

    def test_path_starts_at_first_point(self):
        svg = Guilloche(make_params()).to_svg()
        self.assertIn('d="M 580.000 400.000 L ', svg)

    def test_vertex_count(self):
        guilloche = Guilloche(make_params(t_range=1, t_step=0.1))
        svg = guilloche.to_svg()
        path = re.search(r' d="([^"]+)"', svg).group(1)
        expected = len(guilloche.build_curve(0, (400, 400)).points)
        self.assertEqual(path.count('L ') + path.count('M '), expected)

    def test_other_color_counts_warn(self):
        guilloche = Guilloche(make_params(colors=('#000000', '#808080', '#ffffff')))
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter('always')
            svg = guilloche.to_svg()
        self.assertTrue(any('4 gradient colors' in str(w.message) for w in caught))
        self.assertIn('offset="0%"', svg)
        self.assertIn('offset="100%"', svg)
        root = ET.fromstring(svg.encode('utf-8'))
        stops = root.findall('svg:defs/svg:linearGradient/svg:stop', SVG_NS)
        self.assertEqual([s.get('offset') for s in stops], ['0%', '50%', '100%'])

    def test_fixed_offsets(self):
        self.assertEqual(EXPORT_STOP_OFFSETS, (0, 0.33, 0.67, 1))

    def test_save_svg(self):
        import tempfile
        from pathlib import Path

        with tempfile.TemporaryDirectory() as tmp:
            saved = Guilloche(make_params(t_range=1, t_step=0.1)).save_svg(Path(tmp) / 'out' / 'pattern')
            self.assertEqual(saved.suffix, '.svg')
            self.assertTrue(saved.read_text(encoding='utf-8').startswith('<?xml'))


if __name__ == "__main__":
    unittest.main()
