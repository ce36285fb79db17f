import unittest

from gate_map.config import LayoutSettings, load_settings
from gate_map.gates import ExclusionReason, GateMapError, ImageSize
from gate_map.layout import build_layout
from gate_map.markers import Emphasis, Tone
from gate_map.projection import CanvasSize
from gate_map.render import render_ascii
from gate_map.viewport import ZoomRange


VENUE = [
    {"id": "A", "name": "Main Gate", "latitude": 0.0, "longitude": 0.0, "checkin_count": 0},
    {"id": "B", "latitude": 0.0001, "longitude": 0.0001, "checkin_count": 0},
    {"id": "C", "name": "VIP", "latitude": 10.0, "longitude": 10.0, "checkin_count": 100},
]


class TestBuildLayout(unittest.TestCase):
    def test_venue_example(self):
        layout = build_layout(VENUE, CanvasSize(800, 600))
        self.assertEqual(layout.mode, "geo")
        self.assertEqual([c.gate_ids for c in layout.clusters], [("A", "B"), ("C",)])
        ab, c = layout.clusters
        self.assertEqual(ab.emphasis, Emphasis.normal)
        self.assertEqual(ab.label, "2")
        self.assertEqual(c.emphasis, Emphasis.high)
        self.assertEqual(c.label, "VIP")
        self.assertEqual(c.tone, Tone.healthy)
        # north-east gate lands up and to the right
        self.assertGreater(c.position.x, ab.position.x)
        self.assertLess(c.position.y, ab.position.y)
        for view in layout.clusters:
            self.assertTrue(0 < view.position.x < 800)
            self.assertTrue(0 < view.position.y < 600)
        self.assertIsNotNone(layout.viewport)
        self.assertEqual(layout.excluded, [])

    def test_single_gate_lands_in_canvas_center(self):
        layout = build_layout([{"id": "solo", "lat": 51.5, "lon": -0.12}], CanvasSize(800, 600))
        (view,) = layout.clusters
        self.assertTrue(layout.bounds.degenerate)
        self.assertAlmostEqual(view.position.x, 400.0)
        self.assertAlmostEqual(view.position.y, 300.0)

    def test_no_gates_gives_empty_layout(self):
        layout = build_layout([], CanvasSize(800, 600))
        self.assertTrue(layout.is_empty)
        self.assertIsNone(layout.viewport)
        self.assertIsNone(layout.bounds)

    def test_all_gates_without_coordinates(self):
        layout = build_layout([{"id": "g1"}, {"id": "g2"}], CanvasSize(800, 600))
        self.assertTrue(layout.is_empty)
        self.assertEqual(layout.excluded_ids, ["g1", "g2"])

    def test_image_mode_excludes_points_outside_the_image(self):
        gates = [
            {"id": "in1", "x": 100, "y": 200},
            {"id": "in2", "x": 900, "y": 700},
            {"id": "out", "x": 1500, "y": 10},
            {"id": "geo", "latitude": 1, "longitude": 1},
        ]
        layout = build_layout(gates, CanvasSize(1000, 800), image_size=ImageSize(1000, 800))
        self.assertEqual(layout.mode, "image")
        reasons = {e.gate_id: e.reason for e in layout.excluded}
        self.assertEqual(reasons, {"out": ExclusionReason.out_of_range, "geo": ExclusionReason.mode_mismatch})
        in1, in2 = layout.clusters
        # image y grows downward on screen
        self.assertLess(in1.position.y, in2.position.y)

    def test_invalid_latitude_is_excluded(self):
        layout = build_layout(VENUE + [{"id": "bad", "latitude": 95, "longitude": 1}], CanvasSize(800, 600))
        self.assertEqual(layout.excluded_ids, ["bad"])

    def test_settings_change_clustering(self):
        settings = LayoutSettings(geo_threshold=20.0)
        layout = build_layout(VENUE, CanvasSize(800, 600), settings=settings)
        self.assertEqual(len(layout.clusters), 1)
        # three gates, 100 check-ins
        self.assertAlmostEqual(layout.clusters[0].size, 28.8)

    def test_zoom_range_is_honoured(self):
        layout = build_layout(VENUE, CanvasSize(800, 600), zoom_range=ZoomRange(5, 7))
        self.assertEqual(layout.viewport.zoom, 5)

    def test_to_dict(self):
        d = build_layout(VENUE, CanvasSize(800, 600)).to_dict()
        self.assertEqual(d["mode"], "geo")
        self.assertFalse(d["empty"])
        self.assertEqual(d["clusters"][1]["emphasis"], "high")
        self.assertEqual(d["clusters"][0]["gate_ids"], ["A", "B"])
        self.assertIn("zoom", d["viewport"])

    def test_bad_canvas_raises(self):
        with self.assertRaises(GateMapError):
            build_layout(VENUE, CanvasSize(-1, 600))

    def test_render_ascii(self):
        text = render_ascii(build_layout(VENUE, CanvasSize(800, 600)), cols=20, rows=10)
        lines = text.splitlines()
        self.assertEqual(len(lines), 11)
        self.assertIn("2", text)
        self.assertIn("*", text)
        self.assertIn("2 marker(s), 3 gate(s), 0 excluded", lines[-1])

    def test_render_empty(self):
        self.assertIn("No gates", render_ascii(build_layout([], CanvasSize(800, 600))))


class TestSettings(unittest.TestCase):
    def test_defaults(self):
        s = load_settings({})
        self.assertEqual(s, LayoutSettings())
        self.assertEqual(s.zoom_range, ZoomRange(1.0, 18.0))

    def test_env_overrides(self):
        s = load_settings(
            {"GATE_MAP_GEO_THRESHOLD": "0.001", "GATE_MAP_CLAMP_TO_IMAGE": "yes", "GATE_MAP_LOG_LEVEL": "debug"}
        )
        self.assertEqual(s.geo_threshold, 0.001)
        self.assertTrue(s.clamp_to_image)
        self.assertEqual(s.log_level, "DEBUG")

    def test_bad_values_raise(self):
        with self.assertRaises(GateMapError):
            load_settings({"GATE_MAP_MIN_ZOOM": "abc"})
        with self.assertRaises(GateMapError):
            load_settings({"GATE_MAP_MIN_ZOOM": "10", "GATE_MAP_MAX_ZOOM": "2"})
        with self.assertRaises(GateMapError):
            LayoutSettings().with_overrides(image_threshold=0)


if __name__ == "__main__":
    unittest.main()
