import json
import os
import tempfile
import unittest

from schema_canvas.diagram_io import (
    diagram_from_dict,
    diagram_from_json,
    diagram_to_dict,
    diagram_to_json,
    load_diagram_from_json,
    save_diagram_to_json,
)
from schema_canvas.diagram_model import Diagram, Field, Note, Relationship, Table, Viewport
from schema_canvas.errors import is_actionable_message


class TestDiagramIO(unittest.TestCase):
    def _diagram(self) -> Diagram:
        customers = Table(
            id="t1",
            name="customers",
            x=10,
            y=20,
            fields=[
                Field(id="f1", name="id", type="int", nullable=False, primary_key=True),
                Field(id="f2", name="region", type="text"),
            ],
            catalog_table_id="public.customers",
        )
        orders = Table(
            id="t2",
            name="orders",
            x=400,
            y=20,
            fields=[
                Field(id="f3", name="id", type="int", nullable=False, primary_key=True),
                Field(id="f4", name="customer_id", type="int"),
                Field(id="f5", name="region", type="text"),
            ],
        )
        return Diagram(
            version=1,
            tables=[customers, orders],
            relationships=[
                Relationship(
                    id="r1",
                    source_table_id="t2",
                    target_table_id="t1",
                    source_field_ids=["f4", "f5"],
                    target_field_ids=["f1", "f2"],
                    name="orders_customer",
                    cardinality="many-to-1",
                )
            ],
            notes=[Note(id="n1", x=5, y=300, text="check regions", width=220, height=90)],
            viewport=Viewport(zoom=1.25, pan_x=-40, pan_y=12),
        )

    def test_json_roundtrip_preserves_document(self):
        diagram = self._diagram()
        loaded = diagram_from_json(diagram_to_json(diagram))
        self.assertEqual(loaded, diagram)

    def test_relationship_emits_plural_and_singular_ids(self):
        data = diagram_to_dict(self._diagram())
        rel = data["relationships"][0]
        self.assertEqual(rel["sourceFieldIds"], ["f4", "f5"])
        self.assertEqual(rel["targetFieldIds"], ["f1", "f2"])
        self.assertEqual(rel["sourceFieldId"], "f4")
        self.assertEqual(rel["targetFieldId"], "f1")
        self.assertNotIn("note", rel)

    def test_field_flags_are_written_only_when_set(self):
        fields = diagram_to_dict(self._diagram())["tables"][0]["fields"]
        self.assertEqual(fields[0]["nullable"], False)
        self.assertTrue(fields[0]["primaryKey"])
        self.assertNotIn("nullable", fields[1])
        self.assertNotIn("primaryKey", fields[1])

    def test_viewport_uses_camel_case_keys(self):
        data = diagram_to_dict(self._diagram())
        self.assertEqual(data["viewport"], {"zoom": 1.25, "panX": -40, "panY": 12})
        self.assertEqual(data["tables"][0]["catalogTableId"], "public.customers")

    def test_legacy_singular_relationship_ids_are_accepted(self):
        data = {
            "version": 1,
            "tables": [
                {"id": "t1", "name": "a", "x": 0, "y": 0, "fields": [{"id": "f1", "name": "id", "type": "INT"}]},
                {"id": "t2", "name": "b", "x": 0, "y": 0, "fields": [{"id": "f2", "name": "a_id", "type": "int"}]},
            ],
            "relationships": [
                {
                    "id": "r1",
                    "sourceTableId": "t2",
                    "sourceFieldId": "f2",
                    "targetTableId": "t1",
                    "targetFieldId": "f1",
                    "sourceFieldIds": [],
                }
            ],
        }
        diagram = diagram_from_dict(data)
        rel = diagram.relationships[0]
        self.assertEqual(rel.source_field_ids, ["f2"])
        self.assertEqual(rel.target_field_ids, ["f1"])
        self.assertEqual(diagram.tables[0].fields[0].type, "int")

    def test_missing_optional_collections_default_to_empty(self):
        diagram = diagram_from_json('{"tables": []}')
        self.assertEqual(diagram.version, 1)
        self.assertEqual(diagram.notes, [])
        self.assertEqual(diagram.relationships, [])
        self.assertIsNone(diagram.viewport)

    def test_invalid_json_reports_actionable_error(self):
        with self.assertRaises(ValueError) as ctx:
            diagram_from_json("{not json")
        msg = str(ctx.exception)
        self.assertIn("Diagram JSON / Document", msg)
        self.assertIn("Fix:", msg)

    def test_table_without_id_is_rejected(self):
        with self.assertRaises(ValueError) as ctx:
            diagram_from_dict({"tables": [{"name": "no_id", "fields": []}]})
        msg = str(ctx.exception)
        self.assertIn("tables[0]", msg)
        self.assertTrue(is_actionable_message(msg))

    def test_non_numeric_position_is_rejected(self):
        with self.assertRaises(ValueError) as ctx:
            diagram_from_dict({"tables": [{"id": "t1", "x": "left", "fields": []}]})
        self.assertIn("'x' must be a number", str(ctx.exception))

    def test_non_integer_version_is_rejected(self):
        with self.assertRaises(ValueError) as ctx:
            diagram_from_dict({"version": "one"})
        self.assertIn("Fix:", str(ctx.exception))

    def test_save_and_load_file(self):
        diagram = self._diagram()
        tmp = tempfile.NamedTemporaryFile(suffix=".json", delete=False)
        path = tmp.name
        tmp.close()

        try:
            save_diagram_to_json(diagram, path)
            with open(path, "r", encoding="utf-8") as f:
                raw = json.load(f)
            self.assertEqual(raw["version"], 1)
            self.assertEqual(load_diagram_from_json(path), diagram)
        finally:
            try:
                os.remove(path)
            except PermissionError:
                pass


if __name__ == "__main__":
    unittest.main()
