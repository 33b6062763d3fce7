from __future__ import annotations

import json
import logging
from typing import Any

from schema_canvas.diagram_model import (
    CURRENT_VERSION,
    Diagram,
    Field,
    Note,
    Relationship,
    Table,
    Viewport,
    normalize_field_type,
)
from schema_canvas.errors import format_actionable_error

logger = logging.getLogger("diagram_io")


def _io_error(location: str, issue: str, hint: str) -> ValueError:
    return ValueError(format_actionable_error("Diagram JSON", location, issue, hint))


def _put_optional(out: dict[str, Any], key: str, value: Any) -> None:
    if value is not None:
        out[key] = value


def field_to_dict(f: Field) -> dict[str, Any]:
    out: dict[str, Any] = {"id": f.id, "name": f.name, "type": f.type}
    if f.nullable is False:
        out["nullable"] = False
    if f.primary_key:
        out["primaryKey"] = True
    return out


def table_to_dict(table: Table) -> dict[str, Any]:
    out: dict[str, Any] = {
        "id": table.id,
        "name": table.name,
        "x": table.x,
        "y": table.y,
        "fields": [field_to_dict(f) for f in table.fields],
    }
    _put_optional(out, "catalogTableId", table.catalog_table_id)
    return out


def relationship_to_dict(relationship: Relationship) -> dict[str, Any]:
    # Singular ids are emitted for readers that predate compound keys.
    out: dict[str, Any] = {
        "id": relationship.id,
        "sourceTableId": relationship.source_table_id,
        "sourceFieldId": relationship.source_field_id,
        "targetTableId": relationship.target_table_id,
        "targetFieldId": relationship.target_field_id,
        "sourceFieldIds": list(relationship.source_field_ids),
        "targetFieldIds": list(relationship.target_field_ids),
    }
    _put_optional(out, "name", relationship.name)
    _put_optional(out, "note", relationship.note)
    _put_optional(out, "cardinality", relationship.cardinality)
    _put_optional(out, "label", relationship.label)
    return out


def note_to_dict(note: Note) -> dict[str, Any]:
    out: dict[str, Any] = {"id": note.id, "x": note.x, "y": note.y}
    _put_optional(out, "width", note.width)
    _put_optional(out, "height", note.height)
    out["text"] = note.text
    return out


def diagram_to_dict(diagram: Diagram) -> dict[str, Any]:
    data: dict[str, Any] = {
        "version": diagram.version,
        "tables": [table_to_dict(t) for t in diagram.tables],
        "relationships": [relationship_to_dict(r) for r in diagram.relationships],
        "notes": [note_to_dict(n) for n in diagram.notes],
    }
    if diagram.viewport is not None:
        data["viewport"] = {
            "zoom": diagram.viewport.zoom,
            "panX": diagram.viewport.pan_x,
            "panY": diagram.viewport.pan_y,
        }
    return data


def _require_str(raw: dict[str, Any], key: str, *, location: str) -> str:
    value = raw.get(key)
    if not isinstance(value, str) or value.strip() == "":
        raise _io_error(location, f"'{key}' must be a non-empty string", f"set '{key}' to a string value")
    return value


def _number(raw: dict[str, Any], key: str, *, location: str, default: float | None = 0.0) -> float | None:
    value = raw.get(key)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise _io_error(location, f"'{key}' must be a number", f"set '{key}' to a numeric value")
    return value


def _list(raw: dict[str, Any], key: str, *, location: str) -> list[Any]:
    value = raw.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise _io_error(location, f"'{key}' must be a list", f"set '{key}' to a JSON array")
    return value


def _object(value: Any, *, location: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise _io_error(location, "entry must be a JSON object", "replace the entry with an object")
    return value


def _optional_str(raw: dict[str, Any], key: str) -> str | None:
    value = raw.get(key)
    if value is None:
        return None
    text = str(value)
    return text if text.strip() else None


def field_from_dict(raw: Any, *, location: str) -> Field:
    data = _object(raw, location=location)
    return Field(
        id=_require_str(data, "id", location=location),
        name=str(data.get("name", "")),
        type=normalize_field_type(data.get("type", "")),
        nullable=bool(data.get("nullable", True)),
        primary_key=bool(data.get("primaryKey", False)),
    )


def table_from_dict(raw: Any, *, location: str) -> Table:
    data = _object(raw, location=location)
    table_id = _require_str(data, "id", location=location)
    fields = [
        field_from_dict(f, location=f"{location} / fields[{i}]")
        for i, f in enumerate(_list(data, "fields", location=location))
    ]
    return Table(
        id=table_id,
        name=str(data.get("name", "")),
        x=_number(data, "x", location=location),
        y=_number(data, "y", location=location),
        fields=fields,
        catalog_table_id=_optional_str(data, "catalogTableId"),
    )


def _field_id_list(data: dict[str, Any], plural: str, singular: str, *, location: str) -> list[str]:
    values = data.get(plural)
    if isinstance(values, list) and values:
        return [str(v) for v in values]
    if values is not None and not isinstance(values, list):
        raise _io_error(location, f"'{plural}' must be a list", f"set '{plural}' to a JSON array of field ids")
    single = data.get(singular)
    if isinstance(single, str) and single:
        return [single]
    return []


def relationship_from_dict(raw: Any, *, location: str) -> Relationship:
    data = _object(raw, location=location)
    return Relationship(
        id=_require_str(data, "id", location=location),
        source_table_id=_require_str(data, "sourceTableId", location=location),
        target_table_id=_require_str(data, "targetTableId", location=location),
        source_field_ids=_field_id_list(data, "sourceFieldIds", "sourceFieldId", location=location),
        target_field_ids=_field_id_list(data, "targetFieldIds", "targetFieldId", location=location),
        name=_optional_str(data, "name"),
        note=_optional_str(data, "note"),
        cardinality=_optional_str(data, "cardinality"),
        label=_optional_str(data, "label"),
    )


def note_from_dict(raw: Any, *, location: str) -> Note:
    data = _object(raw, location=location)
    return Note(
        id=_require_str(data, "id", location=location),
        x=_number(data, "x", location=location),
        y=_number(data, "y", location=location),
        text=str(data.get("text", "")),
        width=_number(data, "width", location=location, default=None),
        height=_number(data, "height", location=location, default=None),
    )


def diagram_from_dict(data: Any) -> Diagram:
    root = _object(data, location="Document")
    version = root.get("version", CURRENT_VERSION)
    if isinstance(version, bool) or not isinstance(version, int):
        raise _io_error("version", "must be an integer", f"set 'version' to {CURRENT_VERSION}")

    viewport = None
    raw_viewport = root.get("viewport")
    if raw_viewport is not None:
        vp = _object(raw_viewport, location="viewport")
        viewport = Viewport(
            zoom=_number(vp, "zoom", location="viewport", default=1.0),
            pan_x=_number(vp, "panX", location="viewport"),
            pan_y=_number(vp, "panY", location="viewport"),
        )

    return Diagram(
        version=version,
        tables=[
            table_from_dict(t, location=f"tables[{i}]")
            for i, t in enumerate(_list(root, "tables", location="Document"))
        ],
        relationships=[
            relationship_from_dict(r, location=f"relationships[{i}]")
            for i, r in enumerate(_list(root, "relationships", location="Document"))
        ],
        notes=[
            note_from_dict(n, location=f"notes[{i}]")
            for i, n in enumerate(_list(root, "notes", location="Document"))
        ],
        viewport=viewport,
    )


def diagram_to_json(diagram: Diagram, *, indent: int | None = 2) -> str:
    return json.dumps(diagram_to_dict(diagram), indent=indent)


def diagram_from_json(text: str) -> Diagram:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise _io_error(
            "Document",
            f"invalid JSON at line {exc.lineno} column {exc.colno}",
            "provide a diagram document saved by this editor",
        ) from exc
    return diagram_from_dict(data)


def save_diagram_to_json(diagram: Diagram, path: str) -> None:
    with open(path, "w", encoding="utf-8") as f:
        f.write(diagram_to_json(diagram))
    logger.info("Saved diagram to %s (tables=%d)", path, len(diagram.tables))


def load_diagram_from_json(path: str) -> Diagram:
    with open(path, "r", encoding="utf-8") as f:
        text = f.read()
    return diagram_from_json(text)
