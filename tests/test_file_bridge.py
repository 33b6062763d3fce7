import tempfile
import unittest
from pathlib import Path

from schema_canvas.diagram_io import diagram_to_json
from schema_canvas.diagram_model import Diagram, Field, Relationship, Table
from schema_canvas.diagram_store import DiagramStore
from schema_canvas.errors import is_actionable_message
from schema_canvas.file_bridge import BridgeResult, FileSystemBridge, open_document, save_document


class _MemoryBridge:
    def __init__(self, files: dict[str, str] | None = None, *, fail_writes: bool = False) -> None:
        self.files = dict(files or {})
        self.fail_writes = fail_writes

    def load_text(self, path: str) -> BridgeResult[str]:
        if path not in self.files:
            return BridgeResult(ok=False, error=f"Open diagram / {path}: not found. Fix: pick another file.")
        return BridgeResult(ok=True, value=self.files[path])

    def save_text(self, path: str, content: str) -> BridgeResult[None]:
        if self.fail_writes:
            return BridgeResult(ok=False, error="Save diagram / disk: full. Fix: free space.")
        self.files[path] = content
        return BridgeResult(ok=True)


def _document_with_dangling_relationship() -> Diagram:
    return Diagram(
        tables=[Table(id="t1", name="a", fields=[Field(id="f1", name="id", type="INT")])],
        relationships=[
            Relationship("r1", "t1", "t1", ["f1"], ["f-missing"]),
        ],
    )


class TestFileBridge(unittest.TestCase):
    def test_open_document_loads_normalizes_and_clears_dirty(self):
        bridge = _MemoryBridge({"a.json": diagram_to_json(_document_with_dangling_relationship())})
        store = DiagramStore()
        result = open_document(store, bridge, "a.json")
        self.assertTrue(result.ok)
        self.assertIs(result.value, store.get_document())
        self.assertEqual(store.get_document().tables[0].fields[0].type, "int")
        self.assertEqual(store.get_document().relationships, [])
        self.assertFalse(store.is_dirty())

    def test_open_document_reports_missing_file(self):
        store = DiagramStore()
        result = open_document(store, _MemoryBridge(), "missing.json")
        self.assertFalse(result.ok)
        self.assertIn("Fix:", result.error)
        self.assertFalse(store.can_undo())

    def test_open_document_with_invalid_json_keeps_current_document(self):
        store = DiagramStore()
        store.add_table(0, 0)
        result = open_document(store, _MemoryBridge({"bad.json": "{"}), "bad.json")
        self.assertFalse(result.ok)
        self.assertIn("Diagram JSON", result.error)
        self.assertEqual(len(store.get_document().tables), 1)

    def test_save_document_clears_dirty_only_on_success(self):
        store = DiagramStore()
        store.add_table(0, 0)

        failing = save_document(store, _MemoryBridge(fail_writes=True), "out.json")
        self.assertFalse(failing.ok)
        self.assertTrue(store.is_dirty())

        bridge = _MemoryBridge()
        self.assertTrue(save_document(store, bridge, "out.json").ok)
        self.assertFalse(store.is_dirty())
        self.assertIn('"Table1"', bridge.files["out.json"])

    def test_file_system_bridge_roundtrip(self):
        bridge = FileSystemBridge()
        with tempfile.TemporaryDirectory() as tmp_dir:
            path = str(Path(tmp_dir) / "sub" / "diagram.json")
            source = DiagramStore()
            source.add_note(1, 2, "hello")
            self.assertTrue(save_document(source, bridge, path).ok)

            target = DiagramStore()
            opened = open_document(target, bridge, path)
            self.assertTrue(opened.ok)
            self.assertEqual(target.get_document().notes[0].text, "hello")

    def test_file_system_bridge_reports_unreadable_path(self):
        with tempfile.TemporaryDirectory() as tmp_dir:
            missing = str(Path(tmp_dir) / "nothing.json")
            with self.assertLogs("file_bridge", level="ERROR"):
                result = FileSystemBridge().load_text(missing)
        self.assertFalse(result.ok)
        self.assertIn("Open diagram", result.error)
        self.assertTrue(result.error.endswith("."))
        self.assertIn("Fix:", result.error)

    def test_failure_messages_are_actionable(self):
        result = open_document(DiagramStore(), _MemoryBridge({"x.json": "[]"}), "x.json")
        self.assertFalse(result.ok)
        self.assertTrue(is_actionable_message(result.error))


if __name__ == "__main__":
    unittest.main()
