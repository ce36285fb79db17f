import csv
import io
import json
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path

from gate_map.__main__ import main
from gate_map.gates import GateMapError
from gate_map.layout import build_layout
from gate_map.projection import CanvasSize
from gate_map.storage import load_gates, save_layout, write_clusters_csv


GATES = [
    {"id": "A", "name": "Main Gate", "latitude": 0.3476, "longitude": 32.5825, "checkin_count": 30},
    {"id": "B", "name": "Side Gate", "latitude": 0.3477, "longitude": 32.5826},
    {"id": "C", "name": "VIP", "latitude": 0.3500, "longitude": 32.5900, "status": "maintenance"},
    {"id": "D", "name": "Unplaced"},
]


def run(*argv):
    out = io.StringIO()
    with redirect_stdout(out):
        code = main(list(argv))
    return code, out.getvalue()


class TestStorage(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def test_load_json_list_and_object(self):
        p = self.dir / "gates.json"
        p.write_text(json.dumps(GATES), encoding="utf-8")
        self.assertEqual([g.id for g in load_gates(p)], ["A", "B", "C", "D"])
        p.write_text(json.dumps({"gates": GATES}), encoding="utf-8")
        self.assertEqual(len(load_gates(p)), 4)

    def test_load_csv(self):
        p = self.dir / "gates.csv"
        p.write_text("id,name,x,y,status,health_score,checkin_count\ng1,North,10,20,active,80,3\ng2,South,,,inactive,,\n", encoding="utf-8")
        g1, g2 = load_gates(p)
        self.assertEqual((g1.location.x, g1.location.y), (10.0, 20.0))
        self.assertEqual(g1.health_score, 80.0)
        self.assertIsNone(g2.location)

    def test_load_errors(self):
        with self.assertRaises(GateMapError):
            load_gates(self.dir / "missing.json")
        bad = self.dir / "bad.json"
        bad.write_text("{not json", encoding="utf-8")
        with self.assertRaises(GateMapError):
            load_gates(bad)
        wrong = self.dir / "wrong.json"
        wrong.write_text('{"items": []}', encoding="utf-8")
        with self.assertRaises(GateMapError):
            load_gates(wrong)
        headerless = self.dir / "gates.csv"
        headerless.write_text("name,x,y\nA,1,2\n", encoding="utf-8")
        with self.assertRaises(GateMapError):
            load_gates(headerless)

    def test_save_layout_and_csv(self):
        layout = build_layout(GATES, CanvasSize(800, 600))
        save_layout(layout, self.dir / "out" / "layout.json")
        data = json.loads((self.dir / "out" / "layout.json").read_text(encoding="utf-8"))
        self.assertEqual(data["excluded"][0]["gate_id"], "D")

        write_clusters_csv(layout, self.dir / "clusters.csv")
        with (self.dir / "clusters.csv").open(newline="", encoding="utf-8") as f:
            rows = list(csv.DictReader(f))
        self.assertEqual(rows[0]["gate_ids"], "A;B")
        self.assertEqual(rows[0]["emphasis"], "high")
        self.assertEqual(rows[1]["status"], "maintenance")


class TestCli(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.file = str(Path(self._tmp.name) / "gates.json")
        Path(self.file).write_text(json.dumps(GATES), encoding="utf-8")

    def tearDown(self):
        self._tmp.cleanup()

    def test_layout_json(self):
        code, out = run("layout", "--file", self.file)
        self.assertEqual(code, 0)
        data = json.loads(out)
        self.assertEqual([c["gate_ids"] for c in data["clusters"]], [["A", "B"], ["C"]])

    def test_show(self):
        code, out = run("show", "--file", self.file, "--cols", "30", "--rows", "8")
        self.assertEqual(code, 0)
        self.assertIn("2 marker(s), 3 gate(s), 1 excluded", out)

    def test_viewport(self):
        code, out = run("viewport", "--file", self.file, "--max-zoom", "12")
        self.assertEqual(code, 0)
        self.assertIn("zoom=12", out)

    def test_validate(self):
        code, out = run("validate", "--file", self.file)
        self.assertEqual(code, 1)
        self.assertIn("3/4 gates valid", out)
        self.assertIn("D: missing latitude/longitude coordinates", out)

    def test_nearest(self):
        code, out = run("nearest", "--file", self.file, "--id", "A")
        self.assertEqual(code, 0)
        self.assertIn("Nearest to Main Gate: Side Gate", out)
        code, out = run("nearest", "--file", self.file, "--id", "nope")
        self.assertEqual(code, 2)
        self.assertIn("Error: gate not found", out)

    def test_export_csv(self):
        target = str(Path(self._tmp.name) / "clusters.csv")
        code, out = run("export-csv", "--file", self.file, "--output", target)
        self.assertEqual(code, 0)
        self.assertTrue(Path(target).exists())

    def test_threshold_applies_to_inferred_image_mode(self):
        Path(self.file).write_text(
            json.dumps([{"id": "A", "x": 0, "y": 0}, {"id": "B", "x": 10, "y": 0}]), encoding="utf-8"
        )
        code, out = run("layout", "--file", self.file)
        self.assertEqual([c["gate_ids"] for c in json.loads(out)["clusters"]], [["A", "B"]])
        code, out = run("layout", "--file", self.file, "--threshold", "5")
        self.assertEqual(code, 0)
        data = json.loads(out)
        self.assertEqual(data["mode"], "image")
        self.assertEqual([c["gate_ids"] for c in data["clusters"]], [["A"], ["B"]])

    def test_missing_file_is_an_error(self):
        code, out = run("layout", "--file", str(Path(self._tmp.name) / "none.json"))
        self.assertEqual(code, 2)
        self.assertTrue(out.startswith("Error:"))


if __name__ == "__main__":
    unittest.main()
