import tempfile
import unittest
from pathlib import Path

from schema_canvas.diagram_model import Diagram, Field, Note, Relationship, Table
from schema_canvas.svg_export import (
    build_diagram_svg,
    compute_diagram_bounds,
    export_svg_file,
    relationship_caption,
)


class TestSvgExport(unittest.TestCase):
    def _diagram(self) -> Diagram:
        customers = Table(
            id="t1",
            name="customers",
            x=0,
            y=0,
            fields=[
                Field(id="f1", name="id", type="int", nullable=False, primary_key=True),
                Field(id="f2", name="region", type="text"),
            ],
        )
        orders = Table(
            id="t2",
            name="orders & items",
            x=500,
            y=0,
            fields=[Field(id="f3", name="customer_id", type="int"), Field(id="f4", name="region", type="text")],
        )
        return Diagram(
            tables=[customers, orders],
            relationships=[
                Relationship(
                    id="r1",
                    source_table_id="t2",
                    target_table_id="t1",
                    source_field_ids=["f3", "f4"],
                    target_field_ids=["f1", "f2"],
                    name="orders_customer",
                    cardinality="many-to-1",
                )
            ],
            notes=[Note(id="n1", x=0, y=200, text="first line\nsecond line")],
        )

    def test_svg_contains_tables_escaped_names_and_caption(self):
        svg = build_diagram_svg(self._diagram())
        self.assertIn("<svg", svg)
        self.assertIn("customers", svg)
        self.assertIn("orders &amp; items", svg)
        self.assertIn("id (PK)", svg)
        self.assertIn("orders_customer (many-to-1)", svg)
        self.assertIn("second line", svg)

    def test_compound_relationship_draws_single_path_and_arrowhead(self):
        svg = build_diagram_svg(self._diagram(), show_notes=False)
        self.assertEqual(svg.count("<path"), 2)

    def test_options_hide_relationships_types_and_notes(self):
        svg = build_diagram_svg(
            self._diagram(),
            show_relationships=False,
            show_types=False,
            show_notes=False,
        )
        self.assertNotIn("<path", svg)
        self.assertNotIn(">int<", svg)
        self.assertNotIn("first line", svg)

    def test_bounds_cover_tables_and_notes(self):
        min_x, min_y, width, height = compute_diagram_bounds(self._diagram(), margin=10)
        self.assertEqual((min_x, min_y), (-10, -10))
        self.assertEqual(width, 500 + 200 + 20)
        self.assertEqual(height, 200 + 100 + 20)

    def test_relationship_caption_variants(self):
        rel = Relationship(id="r", source_table_id="a", target_table_id="b")
        self.assertEqual(relationship_caption(rel), "")
        rel.cardinality = "1-to-1"
        self.assertEqual(relationship_caption(rel), "1-to-1")
        rel.name = "fk"
        rel.label = "owner"
        self.assertEqual(relationship_caption(rel), "fk (1-to-1, owner)")

    def test_export_svg_file_writes_svg(self):
        svg = build_diagram_svg(self._diagram())
        with tempfile.TemporaryDirectory() as tmp_dir:
            output_path = Path(tmp_dir) / "nested" / "diagram.svg"
            saved = export_svg_file(output_path_value=str(output_path), svg_text=svg)
            self.assertEqual(saved, output_path)
            self.assertIn("<svg", output_path.read_text(encoding="utf-8"))

    def test_export_svg_file_rejects_unknown_extension(self):
        with self.assertRaises(ValueError) as ctx:
            export_svg_file(output_path_value="diagram.png", svg_text="<svg />")
        msg = str(ctx.exception)
        self.assertIn("SVG export / Export format", msg)
        self.assertIn("Fix:", msg)

    def test_export_svg_file_requires_path(self):
        with self.assertRaises(ValueError) as ctx:
            export_svg_file(output_path_value="  ", svg_text="<svg />")
        self.assertIn("SVG export / Export path", str(ctx.exception))


if __name__ == "__main__":
    unittest.main()
