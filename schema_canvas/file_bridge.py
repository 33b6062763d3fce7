from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Generic, Protocol, TypeVar

from schema_canvas.diagram_io import diagram_from_json, diagram_to_json
from schema_canvas.diagram_model import Diagram
from schema_canvas.diagram_store import DiagramStore
from schema_canvas.errors import format_actionable_error

logger = logging.getLogger("file_bridge")

T = TypeVar("T")


@dataclass(frozen=True)
class BridgeResult(Generic[T]):
    ok: bool
    value: T | None = None
    error: str = ""


class DiagramHostBridge(Protocol):
    """Host operations the editor core relies on, one method per operation."""

    def load_text(self, path: str) -> BridgeResult[str]: ...

    def save_text(self, path: str, content: str) -> BridgeResult[None]: ...


class FileSystemBridge:
    """Host bridge backed by the local file system."""

    def load_text(self, path: str) -> BridgeResult[str]:
        try:
            return BridgeResult(ok=True, value=Path(path).read_text(encoding="utf-8"))
        except OSError as exc:
            logger.exception("Load failed: %s", exc)
            return BridgeResult(
                ok=False,
                error=format_actionable_error(
                    "Open diagram",
                    str(path),
                    f"failed to read file ({exc})",
                    "choose an existing, readable diagram file",
                ),
            )

    def save_text(self, path: str, content: str) -> BridgeResult[None]:
        try:
            target = Path(path)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
            return BridgeResult(ok=True)
        except OSError as exc:
            logger.exception("Save failed: %s", exc)
            return BridgeResult(
                ok=False,
                error=format_actionable_error(
                    "Save diagram",
                    str(path),
                    f"failed to write file ({exc})",
                    "check destination path permissions and retry",
                ),
            )


def open_document(store: DiagramStore, bridge: DiagramHostBridge, path: str) -> BridgeResult[Diagram]:
    loaded = bridge.load_text(path)
    if not loaded.ok:
        return BridgeResult(ok=False, error=loaded.error)
    try:
        diagram = diagram_from_json(loaded.value or "")
    except ValueError as exc:
        logger.exception("Diagram parse failed: %s", exc)
        return BridgeResult(ok=False, error=str(exc))
    store.set_document(diagram)
    store.clear_dirty()
    return BridgeResult(ok=True, value=store.get_document())


def save_document(store: DiagramStore, bridge: DiagramHostBridge, path: str) -> BridgeResult[None]:
    result = bridge.save_text(path, diagram_to_json(store.get_document()))
    if result.ok:
        store.clear_dirty()
        logger.info("Saved diagram to %s", path)
    return result
