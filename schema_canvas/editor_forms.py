from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from schema_canvas.diagram_model import CARDINALITY_OPTIONS, FieldDraft, Relationship, normalize_field_type
from schema_canvas.diagram_store import DiagramStore
from schema_canvas.errors import format_actionable_error


def _form_error(field: str, issue: str, hint: str) -> str:
    return format_actionable_error("Diagram editor", field, issue, hint)


@dataclass(frozen=True)
class FieldRow:
    """One row of the table editor grid."""

    name: Any
    type: Any = "text"
    nullable: bool = True
    primary_key: bool = False
    field_id: str | None = None


@dataclass(frozen=True)
class MappingRow:
    """One source-field/target-field row of the relationship editor."""

    source_field_id: str | None
    target_field_id: str | None


def _parse_non_empty_name(value: Any, *, field: str, hint: str) -> str:
    if not isinstance(value, str) or value.strip() == "":
        raise ValueError(_form_error(field, "value is required", hint))
    return value.strip()


def parse_table_form(name_value: Any, rows: Sequence[FieldRow]) -> tuple[str, list[FieldDraft]]:
    name = _parse_non_empty_name(
        name_value,
        field="Edit table / Name",
        hint="enter a non-empty table name",
    )
    drafts: list[FieldDraft] = []
    seen: set[str] = set()
    for idx, row in enumerate(rows, start=1):
        field_name = _parse_non_empty_name(
            row.name,
            field=f"Edit table / Field {idx}",
            hint="enter a field name or remove the empty row",
        )
        if field_name in seen:
            raise ValueError(
                _form_error(
                    f"Edit table / Field {idx}",
                    f"field '{field_name}' appears more than once",
                    "choose a unique field name for this table",
                )
            )
        seen.add(field_name)
        field_type = normalize_field_type(row.type) or "text"
        primary_key = bool(row.primary_key)
        drafts.append(
            FieldDraft(
                name=field_name,
                type=field_type,
                nullable=False if primary_key else bool(row.nullable),
                primary_key=primary_key,
                id=row.field_id or None,
            )
        )
    return name, drafts


def resolve_field_pairs(rows: Sequence[MappingRow]) -> tuple[list[str], list[str]]:
    source_ids: list[str] = []
    target_ids: list[str] = []
    for row in rows:
        # Half-filled rows are ignored, matching how the editor treats blank selections.
        if not row.source_field_id or not row.target_field_id:
            continue
        source_ids.append(row.source_field_id)
        target_ids.append(row.target_field_id)
    if not source_ids:
        raise ValueError(
            _form_error(
                "Relationship / Field mapping",
                "no source/target field pairs were selected",
                "choose at least one source field and its target field",
            )
        )
    return source_ids, target_ids


def parse_cardinality(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    if text == "":
        return None
    if text not in CARDINALITY_OPTIONS:
        raise ValueError(
            _form_error(
                "Relationship / Cardinality",
                f"unsupported cardinality '{text}'",
                f"choose one of: {', '.join(CARDINALITY_OPTIONS)}",
            )
        )
    return text


def submit_table_form(store: DiagramStore, table_id: str, name_value: Any, rows: Sequence[FieldRow]) -> None:
    name, drafts = parse_table_form(name_value, rows)
    store.replace_table_content(table_id, name, drafts)


def submit_relationship_form(
    store: DiagramStore,
    *,
    source_table_id: str,
    target_table_id: str,
    rows: Sequence[MappingRow],
    name: str | None = None,
    note: str | None = None,
    cardinality_value: Any = None,
    relationship_id: str | None = None,
) -> Relationship | None:
    """Validate editor input and create or update a relationship through the store.

    Returns the created relationship, or None for an update or an unresolved
    endpoint.
    """
    source_ids, target_ids = resolve_field_pairs(rows)
    cardinality = parse_cardinality(cardinality_value)
    if relationship_id is not None:
        store.update_relationship_meta(
            relationship_id,
            source_ids,
            target_ids,
            name=name,
            note=note,
            cardinality=cardinality,
        )
        return None
    return store.add_relationship_with_meta(
        source_table_id,
        source_ids,
        target_table_id,
        target_ids,
        name=name,
        note=note,
        cardinality=cardinality,
    )
