from __future__ import annotations

import copy
import logging
import uuid
from typing import Callable, Sequence

from schema_canvas.diagram_model import (
    CARDINALITY_OPTIONS,
    Diagram,
    Field,
    FieldDraft,
    Note,
    Relationship,
    Table,
    Viewport,
    create_empty_diagram,
    field_index,
    find_note,
    find_relationship,
    find_table,
    normalize_diagram,
    normalize_field_type,
)
from schema_canvas.errors import InvalidRelationshipError, TableNotFoundError, format_actionable_error
from schema_canvas.layout import FORCE_ITERATIONS, LAYOUT_KINDS, compute_layout

logger = logging.getLogger("diagram_store")

MAX_UNDO = 50

Listener = Callable[[], None]


def _random_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:9]}"


def _clean_optional(value: str | None) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


class DiagramStore:
    """Owns the diagram document, its undo/redo history and change listeners.

    Structural mutations snapshot the document onto the undo stack before applying
    and clear the redo stack. Position-only updates (dragging, resizing, panning)
    skip the history and only mark the document dirty. Listeners are called
    synchronously, in registration order, once the document is consistent.
    """

    def __init__(
        self,
        initial: Diagram | None = None,
        *,
        max_undo: int = MAX_UNDO,
        id_factory: Callable[[str], str] | None = None,
    ) -> None:
        self._diagram = copy.deepcopy(initial) if initial is not None else create_empty_diagram()
        normalize_diagram(self._diagram)
        # Each entry pairs a snapshot with whether it also owns the viewport.
        self._undo: list[tuple[Diagram, bool]] = []
        self._redo: list[tuple[Diagram, bool]] = []
        self._listeners: list[Listener] = []
        self._max_undo = max(1, int(max_undo))
        self._next_id = id_factory or _random_id
        self._dirty = False

    # -- document access -------------------------------------------------

    def get_document(self) -> Diagram:
        return self._diagram

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()

    def is_dirty(self) -> bool:
        return self._dirty

    def clear_dirty(self) -> None:
        self._dirty = False

    # -- history -----------------------------------------------------------

    def _push_undo(self, *, with_viewport: bool = False) -> None:
        self._undo.append((copy.deepcopy(self._diagram), with_viewport))
        if len(self._undo) > self._max_undo:
            del self._undo[0]
        self._redo.clear()
        self._dirty = True

    def _changed(self) -> None:
        self._dirty = True
        self._notify()

    def can_undo(self) -> bool:
        return bool(self._undo)

    def can_redo(self) -> bool:
        return bool(self._redo)

    def _restore(self, snapshot: Diagram, *, with_viewport: bool) -> None:
        # Viewport is presentation state and survives history navigation, except
        # across whole-document replacement.
        viewport = self._diagram.viewport
        self._diagram = snapshot
        if not with_viewport:
            self._diagram.viewport = copy.deepcopy(viewport)

    def undo(self) -> bool:
        if not self._undo:
            return False
        snapshot, with_viewport = self._undo.pop()
        self._redo.append((copy.deepcopy(self._diagram), with_viewport))
        self._restore(snapshot, with_viewport=with_viewport)
        logger.debug("Undo applied; undo=%d redo=%d", len(self._undo), len(self._redo))
        self._changed()
        return True

    def redo(self) -> bool:
        if not self._redo:
            return False
        snapshot, with_viewport = self._redo.pop()
        self._undo.append((copy.deepcopy(self._diagram), with_viewport))
        if len(self._undo) > self._max_undo:
            del self._undo[0]
        self._restore(snapshot, with_viewport=with_viewport)
        logger.debug("Redo applied; undo=%d redo=%d", len(self._undo), len(self._redo))
        self._changed()
        return True

    def set_document(self, diagram: Diagram) -> None:
        self._push_undo(with_viewport=True)
        self._diagram = copy.deepcopy(diagram)
        pruned = normalize_diagram(self._diagram)
        if pruned:
            logger.warning("Dropped %d relationship(s) referencing missing tables or fields", pruned)
        self._changed()

    # -- tables --------------------------------------------------------------

    def _build_fields(self, drafts: Sequence[FieldDraft]) -> list[Field]:
        taken = {f.id for t in self._diagram.tables for f in t.fields}
        built: list[Field] = []
        for draft in drafts:
            field_id = draft.id
            if not field_id or field_id in taken:
                field_id = self._next_id("f")
            taken.add(field_id)
            built.append(
                Field(
                    id=field_id,
                    name=draft.name,
                    type=normalize_field_type(draft.type),
                    nullable=bool(draft.nullable),
                    primary_key=bool(draft.primary_key),
                )
            )
        return built

    def add_table(self, x: float, y: float) -> Table:
        self._push_undo()
        table = Table(
            id=self._next_id("t"),
            name=f"Table{len(self._diagram.tables) + 1}",
            x=x,
            y=y,
            fields=[Field(id=self._next_id("f"), name="id", type="int", nullable=False, primary_key=True)],
        )
        self._diagram.tables.append(table)
        self._changed()
        return table

    def add_table_with_content(
        self,
        x: float,
        y: float,
        name: str,
        fields: Sequence[FieldDraft],
        catalog_table_id: str | None = None,
    ) -> Table:
        self._push_undo()
        table = Table(
            id=self._next_id("t"),
            name=name,
            x=x,
            y=y,
            fields=self._build_fields(fields),
            catalog_table_id=catalog_table_id,
        )
        self._diagram.tables.append(table)
        self._changed()
        return table

    def replace_table_content(self, table_id: str, name: str, fields: Sequence[FieldDraft]) -> None:
        """Reconcile an edited field list against the table's current fields by id.

        Matching ids are updated in place, unknown or missing ids become new fields,
        and fields absent from ``fields`` are removed together with every
        relationship that references them.
        """
        table = find_table(self._diagram, table_id)
        if table is None:
            return
        self._push_undo()
        existing = {f.id: f for f in table.fields}
        taken = {f.id for t in self._diagram.tables if t.id != table_id for f in t.fields}
        claimed = {d.id for d in fields if d.id in existing}
        next_fields: list[Field] = []
        for draft in fields:
            current = existing.get(draft.id) if draft.id not in taken else None
            if current is not None:
                current.name = draft.name
                current.type = normalize_field_type(draft.type)
                current.nullable = bool(draft.nullable)
                current.primary_key = bool(draft.primary_key)
                next_fields.append(current)
                taken.add(current.id)
                continue
            supplied = draft.id
            if not supplied or supplied in taken or supplied in claimed:
                supplied = self._next_id("f")
            next_fields.append(
                Field(
                    id=supplied,
                    name=draft.name,
                    type=normalize_field_type(draft.type),
                    nullable=bool(draft.nullable),
                    primary_key=bool(draft.primary_key),
                )
            )
            taken.add(supplied)
        kept_ids = {f.id for f in next_fields}
        removed_ids = set(existing) - kept_ids
        table.name = name
        table.fields = next_fields
        if removed_ids:
            self._diagram.relationships = [
                r
                for r in self._diagram.relationships
                if not any(r.touches_field(table_id, fid) for fid in removed_ids)
            ]
        self._changed()

    def update_table_position(self, table_id: str, x: float, y: float) -> None:
        table = find_table(self._diagram, table_id)
        if table is None:
            return
        table.x = x
        table.y = y
        self._changed()

    def delete_table(self, table_id: str) -> None:
        if find_table(self._diagram, table_id) is None:
            return
        self._push_undo()
        self._diagram.tables = [t for t in self._diagram.tables if t.id != table_id]
        self._diagram.relationships = [r for r in self._diagram.relationships if not r.touches_table(table_id)]
        self._changed()

    # -- fields --------------------------------------------------------------

    def add_field(
        self,
        table_id: str,
        name: str = "field",
        field_type: str = "text",
        *,
        nullable: bool = True,
        primary_key: bool = False,
    ) -> Field:
        table = find_table(self._diagram, table_id)
        if table is None:
            raise TableNotFoundError(table_id, location="Add field")
        self._push_undo()
        new_field = Field(
            id=self._next_id("f"),
            name=name,
            type=normalize_field_type(field_type),
            nullable=nullable,
            primary_key=primary_key,
        )
        table.fields.append(new_field)
        self._changed()
        return new_field

    def update_field(
        self,
        table_id: str,
        field_id: str,
        *,
        name: str | None = None,
        field_type: str | None = None,
        nullable: bool | None = None,
        primary_key: bool | None = None,
    ) -> None:
        table = find_table(self._diagram, table_id)
        if table is None:
            return
        idx = field_index(table, field_id)
        if idx < 0:
            return
        self._push_undo()
        target = table.fields[idx]
        if name is not None:
            target.name = name
        if field_type is not None:
            target.type = normalize_field_type(field_type)
        if nullable is not None:
            target.nullable = bool(nullable)
        if primary_key is not None:
            target.primary_key = bool(primary_key)
        self._changed()

    def delete_field(self, table_id: str, field_id: str) -> None:
        table = find_table(self._diagram, table_id)
        if table is None or field_index(table, field_id) < 0:
            return
        self._push_undo()
        table.fields = [f for f in table.fields if f.id != field_id]
        self._diagram.relationships = [
            r for r in self._diagram.relationships if not r.touches_field(table_id, field_id)
        ]
        self._changed()

    def reorder_fields(self, table_id: str, from_index: int, to_index: int) -> None:
        table = find_table(self._diagram, table_id)
        if table is None:
            return
        count = len(table.fields)
        if not (0 <= from_index < count and 0 <= to_index < count) or from_index == to_index:
            return
        self._push_undo()
        moved = table.fields.pop(from_index)
        table.fields.insert(to_index, moved)
        self._changed()

    # -- relationships -------------------------------------------------------

    def _check_field_lists(self, source_field_ids: Sequence[str], target_field_ids: Sequence[str]) -> None:
        if not source_field_ids or not target_field_ids:
            raise InvalidRelationshipError(
                format_actionable_error(
                    "Relationship",
                    "Field mapping",
                    "at least one source/target field pair is required",
                    "map one or more source fields to target fields",
                )
            )
        if len(source_field_ids) != len(target_field_ids):
            raise InvalidRelationshipError(
                format_actionable_error(
                    "Relationship",
                    "Field mapping",
                    (
                        f"source has {len(source_field_ids)} field(s) but target has "
                        f"{len(target_field_ids)}"
                    ),
                    "pair every source field with exactly one target field",
                )
            )

    def _check_cardinality(self, cardinality: str | None) -> str | None:
        value = _clean_optional(cardinality)
        if value is not None and value not in CARDINALITY_OPTIONS:
            raise InvalidRelationshipError(
                format_actionable_error(
                    "Relationship",
                    "Cardinality",
                    f"unsupported cardinality '{value}'",
                    f"choose one of: {', '.join(CARDINALITY_OPTIONS)}",
                )
            )
        return value

    def _endpoints_resolve(
        self,
        source_table_id: str,
        source_field_ids: Sequence[str],
        target_table_id: str,
        target_field_ids: Sequence[str],
    ) -> bool:
        source = find_table(self._diagram, source_table_id)
        target = find_table(self._diagram, target_table_id)
        if source is None or target is None:
            return False
        if any(field_index(source, fid) < 0 for fid in source_field_ids):
            return False
        if any(field_index(target, fid) < 0 for fid in target_field_ids):
            return False
        # Same-table relationships are allowed only between different field groups.
        if source_table_id == target_table_id and set(source_field_ids) == set(target_field_ids):
            return False
        return True

    def add_relationship(
        self,
        source_table_id: str,
        source_field_id: str,
        target_table_id: str,
        target_field_id: str,
    ) -> Relationship | None:
        return self.add_relationship_with_meta(
            source_table_id,
            [source_field_id],
            target_table_id,
            [target_field_id],
        )

    def add_relationship_with_meta(
        self,
        source_table_id: str,
        source_field_ids: Sequence[str],
        target_table_id: str,
        target_field_ids: Sequence[str],
        *,
        name: str | None = None,
        note: str | None = None,
        cardinality: str | None = None,
    ) -> Relationship | None:
        """Create a relationship; returns None when an endpoint does not resolve."""
        self._check_field_lists(source_field_ids, target_field_ids)
        cardinality_value = self._check_cardinality(cardinality)
        if not self._endpoints_resolve(source_table_id, source_field_ids, target_table_id, target_field_ids):
            logger.info(
                "Relationship not created; endpoints %s -> %s do not resolve",
                source_table_id,
                target_table_id,
            )
            return None
        self._push_undo()
        relationship = Relationship(
            id=self._next_id("r"),
            source_table_id=source_table_id,
            target_table_id=target_table_id,
            source_field_ids=list(source_field_ids),
            target_field_ids=list(target_field_ids),
            name=_clean_optional(name),
            note=_clean_optional(note),
            cardinality=cardinality_value,
        )
        self._diagram.relationships.append(relationship)
        self._changed()
        return relationship

    def update_relationship_meta(
        self,
        relationship_id: str,
        source_field_ids: Sequence[str],
        target_field_ids: Sequence[str],
        *,
        name: str | None = None,
        note: str | None = None,
        cardinality: str | None = None,
    ) -> None:
        relationship = find_relationship(self._diagram, relationship_id)
        if relationship is None:
            return
        self._check_field_lists(source_field_ids, target_field_ids)
        cardinality_value = self._check_cardinality(cardinality)
        if not self._endpoints_resolve(
            relationship.source_table_id,
            source_field_ids,
            relationship.target_table_id,
            target_field_ids,
        ):
            return
        self._push_undo()
        relationship.source_field_ids = list(source_field_ids)
        relationship.target_field_ids = list(target_field_ids)
        relationship.name = _clean_optional(name)
        relationship.note = _clean_optional(note)
        relationship.cardinality = cardinality_value
        self._changed()

    def update_relationship_label(self, relationship_id: str, label: str | None) -> None:
        relationship = find_relationship(self._diagram, relationship_id)
        if relationship is None:
            return
        self._push_undo()
        relationship.label = _clean_optional(label)
        self._changed()

    def delete_relationship(self, relationship_id: str) -> None:
        if find_relationship(self._diagram, relationship_id) is None:
            return
        self._push_undo()
        self._diagram.relationships = [r for r in self._diagram.relationships if r.id != relationship_id]
        self._changed()

    # -- notes ---------------------------------------------------------------

    def add_note(self, x: float, y: float, text: str = "") -> Note:
        self._push_undo()
        note = Note(id=self._next_id("n"), x=x, y=y, text=text)
        self._diagram.notes.append(note)
        self._changed()
        return note

    def update_note(self, note_id: str, text: str) -> None:
        note = find_note(self._diagram, note_id)
        if note is None:
            return
        self._push_undo()
        note.text = text
        self._changed()

    def update_note_position(self, note_id: str, x: float, y: float) -> None:
        note = find_note(self._diagram, note_id)
        if note is None:
            return
        note.x = x
        note.y = y
        self._changed()

    def update_note_size(self, note_id: str, width: float, height: float) -> None:
        note = find_note(self._diagram, note_id)
        if note is None:
            return
        note.width = width
        note.height = height
        self._changed()

    def delete_note(self, note_id: str) -> None:
        if find_note(self._diagram, note_id) is None:
            return
        self._push_undo()
        self._diagram.notes = [n for n in self._diagram.notes if n.id != note_id]
        self._changed()

    # -- presentation ----------------------------------------------------------

    def set_viewport(self, viewport: Viewport) -> None:
        self._diagram.viewport = copy.deepcopy(viewport)
        self._changed()

    def apply_layout(self, kind: str, *, force_iterations: int = FORCE_ITERATIONS) -> None:
        if kind not in LAYOUT_KINDS:
            raise ValueError(
                format_actionable_error(
                    "Layout",
                    "Kind",
                    f"unsupported layout '{kind}'",
                    f"choose one of: {', '.join(LAYOUT_KINDS)}",
                )
            )
        tables = self._diagram.tables
        positions = compute_layout(
            kind,
            tables,
            self._diagram.relationships,
            force_iterations=force_iterations,
        )
        if all(
            t.id not in positions or (positions[t.id].x == t.x and positions[t.id].y == t.y)
            for t in tables
        ):
            return
        self._push_undo()
        for table in self._diagram.tables:
            point = positions.get(table.id)
            if point is not None:
                table.x = point.x
                table.y = point.y
        logger.info("Applied %s layout to %d table(s)", kind, len(tables))
        self._changed()
