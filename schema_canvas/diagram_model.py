from __future__ import annotations

from dataclasses import dataclass, field

CURRENT_VERSION = 1

FIELD_TYPES: tuple[str, ...] = (
    "text",
    "int",
    "bigint",
    "numeric",
    "uuid",
    "timestamp",
    "date",
    "boolean",
    "other",
)

CARDINALITY_OPTIONS: tuple[str, ...] = (
    "1-to-1",
    "1-to-many",
    "many-to-1",
    "many-to-many",
    "0..1-to-1",
    "1-to-0..1",
    "0..1-to-many",
    "many-to-0..1",
)


def normalize_field_type(value: object) -> str:
    # Unknown types are kept as-is (lower-cased); only the editor offers FIELD_TYPES.
    return str(value if value is not None else "").strip().lower()


@dataclass
class Field:
    id: str
    name: str
    type: str = "text"
    nullable: bool = True
    primary_key: bool = False


@dataclass
class FieldDraft:
    """Field as submitted by an editor or importer; ``id`` is None for new fields."""

    name: str
    type: str = "text"
    nullable: bool = True
    primary_key: bool = False
    id: str | None = None


@dataclass
class Table:
    id: str
    name: str
    x: float = 0.0
    y: float = 0.0
    fields: list[Field] = field(default_factory=list)
    catalog_table_id: str | None = None


@dataclass
class Relationship:
    id: str
    source_table_id: str
    target_table_id: str
    source_field_ids: list[str] = field(default_factory=list)
    target_field_ids: list[str] = field(default_factory=list)
    name: str | None = None
    note: str | None = None
    cardinality: str | None = None
    label: str | None = None

    @property
    def source_field_id(self) -> str:
        return self.source_field_ids[0] if self.source_field_ids else ""

    @property
    def target_field_id(self) -> str:
        return self.target_field_ids[0] if self.target_field_ids else ""

    def touches_table(self, table_id: str) -> bool:
        return self.source_table_id == table_id or self.target_table_id == table_id

    def touches_field(self, table_id: str, field_id: str) -> bool:
        if self.source_table_id == table_id and field_id in self.source_field_ids:
            return True
        return self.target_table_id == table_id and field_id in self.target_field_ids


@dataclass
class Note:
    id: str
    x: float = 0.0
    y: float = 0.0
    text: str = ""
    width: float | None = None
    height: float | None = None


@dataclass
class Viewport:
    zoom: float = 1.0
    pan_x: float = 0.0
    pan_y: float = 0.0


@dataclass
class Diagram:
    version: int = CURRENT_VERSION
    tables: list[Table] = field(default_factory=list)
    relationships: list[Relationship] = field(default_factory=list)
    notes: list[Note] = field(default_factory=list)
    viewport: Viewport | None = None


def create_empty_diagram() -> Diagram:
    return Diagram(version=CURRENT_VERSION, tables=[], relationships=[], notes=[], viewport=None)


def find_table(diagram: Diagram, table_id: str) -> Table | None:
    for table in diagram.tables:
        if table.id == table_id:
            return table
    return None


def find_relationship(diagram: Diagram, relationship_id: str) -> Relationship | None:
    for relationship in diagram.relationships:
        if relationship.id == relationship_id:
            return relationship
    return None


def find_note(diagram: Diagram, note_id: str) -> Note | None:
    for note in diagram.notes:
        if note.id == note_id:
            return note
    return None


def field_index(table: Table, field_id: str) -> int:
    for idx, candidate in enumerate(table.fields):
        if candidate.id == field_id:
            return idx
    return -1


def relationship_is_resolvable(diagram: Diagram, relationship: Relationship) -> bool:
    source = find_table(diagram, relationship.source_table_id)
    target = find_table(diagram, relationship.target_table_id)
    if source is None or target is None:
        return False
    if not relationship.source_field_ids or not relationship.target_field_ids:
        return False
    if len(relationship.source_field_ids) != len(relationship.target_field_ids):
        return False
    source_ids = {f.id for f in source.fields}
    target_ids = {f.id for f in target.fields}
    return all(fid in source_ids for fid in relationship.source_field_ids) and all(
        fid in target_ids for fid in relationship.target_field_ids
    )


def normalize_diagram(diagram: Diagram) -> int:
    """Normalize a diagram in place and return how many relationships were pruned.

    Field types are lower-cased, a missing notes collection becomes an empty list,
    and relationships that no longer resolve against the tables are dropped.
    """
    if diagram.notes is None:
        diagram.notes = []
    for table in diagram.tables:
        for f in table.fields:
            f.type = normalize_field_type(f.type)
    kept = [r for r in diagram.relationships if relationship_is_resolvable(diagram, r)]
    pruned = len(diagram.relationships) - len(kept)
    diagram.relationships = kept
    return pruned
