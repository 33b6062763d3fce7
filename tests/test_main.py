import json
import tempfile
import unittest
from pathlib import Path

from schema_canvas.diagram_io import diagram_to_json
from schema_canvas.diagram_model import Diagram, Field, Relationship, Table
from schema_canvas.main import main


def _write_diagram(path: Path) -> None:
    diagram = Diagram(
        tables=[
            Table(id="t1", name="customers", x=0, y=0, fields=[Field(id="f1", name="id", type="int")]),
            Table(id="t2", name="orders", x=0, y=0, fields=[Field(id="f2", name="customer_id", type="int")]),
        ],
        relationships=[Relationship("r1", "t2", "t1", ["f2"], ["f1"])],
    )
    path.write_text(diagram_to_json(diagram), encoding="utf-8")


class TestMain(unittest.TestCase):
    def test_layout_command_writes_arranged_diagram(self):
        with tempfile.TemporaryDirectory() as tmp_dir:
            source = Path(tmp_dir) / "diagram.json"
            output = Path(tmp_dir) / "arranged.json"
            _write_diagram(source)

            code = main(["--log-level", "WARNING", "layout", str(source), "--kind", "grid", "--output", str(output)])

            self.assertEqual(code, 0)
            data = json.loads(output.read_text(encoding="utf-8"))
            positions = [(t["x"], t["y"]) for t in data["tables"]]
            self.assertEqual(positions, [(40, 40), (300, 40)])
            self.assertEqual(len(data["relationships"]), 1)

    def test_svg_command_exports_file(self):
        with tempfile.TemporaryDirectory() as tmp_dir:
            source = Path(tmp_dir) / "diagram.json"
            output = Path(tmp_dir) / "diagram.svg"
            _write_diagram(source)

            code = main(["--log-level", "WARNING", "svg", str(source), "--output", str(output)])

            self.assertEqual(code, 0)
            self.assertIn("<svg", output.read_text(encoding="utf-8"))

    def test_svg_command_rejects_bad_extension(self):
        with tempfile.TemporaryDirectory() as tmp_dir:
            source = Path(tmp_dir) / "diagram.json"
            _write_diagram(source)
            code = main(["--log-level", "CRITICAL", "svg", str(source), "--output", str(Path(tmp_dir) / "x.txt")])
            self.assertEqual(code, 1)

    def test_missing_input_returns_error_code(self):
        with tempfile.TemporaryDirectory() as tmp_dir:
            code = main(["--log-level", "CRITICAL", "layout", str(Path(tmp_dir) / "missing.json")])
            self.assertEqual(code, 1)


if __name__ == "__main__":
    unittest.main()
