from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Literal, Sequence

from schema_canvas.diagram_model import Diagram, Relationship, Table, field_index, find_table

TableSide = Literal["left", "right", "top", "bottom"]

TABLE_SIDES: tuple[TableSide, ...] = ("left", "right", "top", "bottom")

TABLE_MIN_WIDTH = 200
ROW_HEIGHT = 22
HEADER_HEIGHT = 28
ARROW_LENGTH = 14
ARROW_HALF_WIDTH = 8
TABLE_PADDING_LEFT = 10
TABLE_PADDING_RIGHT = 10
TABLE_COLUMN_GAP = 12
# Average rendered width of one character at the 12px field font.
TABLE_CHAR_WIDTH = 6.5
MIN_VECTOR_LENGTH = 1.0


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class TableSize:
    width: float
    height: float


def _fmt(value: float) -> str:
    text = f"{value:.3f}".rstrip("0").rstrip(".")
    return "0" if text in ("-0", "") else text


@dataclass(frozen=True)
class RelationshipPath:
    """One cubic Bezier from the source anchor to the arrow base, plus its arrowhead."""

    start: Point
    control1: Point
    control2: Point
    end: Point
    tip: Point
    arrowhead: tuple[Point, Point, Point]
    source_side: str
    target_side: str

    @property
    def path_d(self) -> str:
        return (
            f"M {_fmt(self.start.x)} {_fmt(self.start.y)} "
            f"C {_fmt(self.control1.x)} {_fmt(self.control1.y)}, "
            f"{_fmt(self.control2.x)} {_fmt(self.control2.y)}, "
            f"{_fmt(self.end.x)} {_fmt(self.end.y)}"
        )

    @property
    def arrowhead_path_d(self) -> str:
        tip, left, right = self.arrowhead
        return (
            f"M {_fmt(tip.x)} {_fmt(tip.y)} "
            f"L {_fmt(left.x)} {_fmt(left.y)} "
            f"L {_fmt(right.x)} {_fmt(right.y)} Z"
        )


def _max_len(values: Sequence[str]) -> int:
    return max((len(v) for v in values), default=0)


def field_column_start(table: Table) -> float:
    """X offset, relative to the table's left edge, where the type column begins."""
    name_len = _max_len([f.name for f in table.fields])
    return TABLE_PADDING_LEFT + math.ceil(name_len * TABLE_CHAR_WIDTH) + TABLE_COLUMN_GAP


def table_width(table: Table) -> float:
    header_width = len(table.name) * TABLE_CHAR_WIDTH
    name_col = _max_len([f.name for f in table.fields]) * TABLE_CHAR_WIDTH
    type_col = _max_len([f.type for f in table.fields]) * TABLE_CHAR_WIDTH
    content_width = max(header_width, name_col + TABLE_COLUMN_GAP + type_col)
    return max(
        TABLE_MIN_WIDTH,
        TABLE_PADDING_LEFT + math.ceil(content_width) + TABLE_PADDING_RIGHT,
    )


def table_height(table: Table) -> float:
    return HEADER_HEIGHT + len(table.fields) * ROW_HEIGHT


def table_size(table: Table) -> TableSize:
    return TableSize(width=table_width(table), height=table_height(table))


def table_center(table: Table) -> Point:
    size = table_size(table)
    return Point(table.x + size.width / 2, table.y + size.height / 2)


def _row_center_y(table: Table, index: int) -> float:
    return table.y + HEADER_HEIGHT + index * ROW_HEIGHT + ROW_HEIGHT / 2


def _anchor_at(table: Table, size: TableSize, row_y: float, side: str) -> Point:
    if side == "left":
        return Point(table.x, row_y)
    if side == "top":
        return Point(table.x + size.width / 2, table.y)
    if side == "bottom":
        return Point(table.x + size.width / 2, table.y + size.height)
    return Point(table.x + size.width, row_y)


def field_anchor(table: Table, index: int, side: TableSide) -> Point:
    """Connection point for one field row on the given side of the table.

    Left/right anchors sit at the row's vertical center; top/bottom anchors sit at
    the table's horizontal center. Unknown sides fall back to ``right``.
    """
    return _anchor_at(table, table_size(table), _row_center_y(table, index), side)


def field_group_anchor(table: Table, field_indices: Sequence[int], side: str) -> Point:
    if not field_indices:
        raise ValueError("field_indices must contain at least one field index")
    avg_y = sum(_row_center_y(table, i) for i in field_indices) / len(field_indices)
    return _anchor_at(table, table_size(table), avg_y, side)


def side_anchors(table: Table, field_indices: Sequence[int]) -> dict[str, Point]:
    return {side: field_group_anchor(table, field_indices, side) for side in TABLE_SIDES}


def best_side(anchors: dict[str, Point], toward: Point) -> TableSide:
    best: TableSide = "right"
    best_dist = math.inf
    for side in TABLE_SIDES:
        point = anchors.get(side)
        if point is None:
            continue
        dist = (point.x - toward.x) ** 2 + (point.y - toward.y) ** 2
        if dist < best_dist:
            best_dist = dist
            best = side
    return best


def relationship_path(
    source_table: Table,
    source_field_indices: Sequence[int],
    target_table: Table,
    target_field_indices: Sequence[int],
) -> RelationshipPath:
    if not source_field_indices or not target_field_indices:
        raise ValueError("relationship_path needs at least one field index on each side")

    source_anchors = side_anchors(source_table, source_field_indices)
    target_anchors = side_anchors(target_table, target_field_indices)
    source_side = best_side(source_anchors, table_center(target_table))
    target_side = best_side(target_anchors, table_center(source_table))
    src = source_anchors[source_side]
    tgt = target_anchors[target_side]

    mid_x = (src.x + tgt.x) / 2
    mid_y = (src.y + tgt.y) / 2
    more_horizontal = abs(tgt.x - src.x) > abs(tgt.y - src.y)
    if more_horizontal:
        c1 = Point(mid_x, src.y)
        c2 = Point(mid_x, tgt.y)
    else:
        c1 = Point(src.x, mid_y)
        c2 = Point(tgt.x, mid_y)

    dx = tgt.x - c2.x
    dy = tgt.y - c2.y
    length = math.hypot(dx, dy) or MIN_VECTOR_LENGTH
    ux = dx / length
    uy = dy / length
    base = Point(tgt.x - ux * ARROW_LENGTH, tgt.y - uy * ARROW_LENGTH)

    # Perpendicular to the approach direction.
    px, py = -uy, ux
    corner_a = Point(base.x + px * ARROW_HALF_WIDTH, base.y + py * ARROW_HALF_WIDTH)
    corner_b = Point(base.x - px * ARROW_HALF_WIDTH, base.y - py * ARROW_HALF_WIDTH)

    return RelationshipPath(
        start=src,
        control1=c1,
        control2=c2,
        end=base,
        tip=tgt,
        arrowhead=(tgt, corner_a, corner_b),
        source_side=source_side,
        target_side=target_side,
    )


def relationship_path_for(diagram: Diagram, relationship: Relationship) -> RelationshipPath | None:
    source = find_table(diagram, relationship.source_table_id)
    target = find_table(diagram, relationship.target_table_id)
    if source is None or target is None:
        return None
    source_indices = [i for i in (field_index(source, fid) for fid in relationship.source_field_ids) if i >= 0]
    target_indices = [i for i in (field_index(target, fid) for fid in relationship.target_field_ids) if i >= 0]
    if not source_indices or not target_indices:
        return None
    return relationship_path(source, source_indices, target, target_indices)
