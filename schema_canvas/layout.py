from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Sequence

from schema_canvas.diagram_model import Relationship, Table
from schema_canvas.errors import format_actionable_error
from schema_canvas.geometry import Point, table_size

logger = logging.getLogger("layout")

LAYOUT_KINDS: tuple[str, ...] = ("grid", "hierarchical", "force")

LAYOUT_MARGIN = 40
LAYOUT_GAP = 60
HIERARCHICAL_COLUMNS = 3

FORCE_ITERATIONS = 120
FORCE_DAMPING = 0.85
REPULSION_STRENGTH = 8000.0
ATTRACTION_STRENGTH = 0.08
CENTER_STRENGTH = 0.002
MIN_DISTANCE = 4.0


def _row_layout(tables: Sequence[Table], *, columns: int, gap: float = LAYOUT_GAP) -> dict[str, Point]:
    positions: dict[str, Point] = {}
    columns = max(1, int(columns))
    y = float(LAYOUT_MARGIN)
    for row_start in range(0, len(tables), columns):
        row = tables[row_start : row_start + columns]
        x = float(LAYOUT_MARGIN)
        row_height = 0.0
        for table in row:
            size = table_size(table)
            positions[table.id] = Point(x, y)
            x += size.width + gap
            row_height = max(row_height, size.height)
        y += row_height + gap
    return positions


def grid_layout(tables: Sequence[Table], *, gap: float = LAYOUT_GAP) -> dict[str, Point]:
    """Square-ish grid: ceil(sqrt(n)) columns, rows as tall as their tallest table."""
    if not tables:
        return {}
    return _row_layout(tables, columns=math.ceil(math.sqrt(len(tables))), gap=gap)


def hierarchical_layout(tables: Sequence[Table], *, gap: float = LAYOUT_GAP) -> dict[str, Point]:
    # Row placement with a fixed column count; no dependency ordering is computed.
    return _row_layout(tables, columns=HIERARCHICAL_COLUMNS, gap=gap)


@dataclass
class _Node:
    table_id: str
    cx: float
    cy: float
    half_w: float
    half_h: float
    vx: float = 0.0
    vy: float = 0.0


def _unit(dx: float, dy: float) -> tuple[float, float, float]:
    raw = math.hypot(dx, dy)
    dist = max(raw, MIN_DISTANCE)
    if raw == 0.0:
        return 1.0, 0.0, dist
    return dx / raw, dy / raw, dist


def force_directed_layout(
    tables: Sequence[Table],
    relationships: Sequence[Relationship],
    *,
    iterations: int = FORCE_ITERATIONS,
) -> dict[str, Point]:
    """Physics layout: pairwise repulsion, springs along relationships, weak centering.

    Runs a fixed number of iterations with no early exit, so the result depends
    only on the input positions, sizes and edges.
    """
    if len(tables) <= 1:
        return {t.id: Point(t.x, t.y) for t in tables}

    nodes: list[_Node] = []
    index_by_id: dict[str, int] = {}
    for idx, table in enumerate(tables):
        size = table_size(table)
        index_by_id[table.id] = idx
        nodes.append(
            _Node(
                table_id=table.id,
                cx=table.x + size.width / 2,
                cy=table.y + size.height / 2,
                half_w=size.width / 2,
                half_h=size.height / 2,
            )
        )

    edges: list[tuple[int, int]] = []
    for rel in relationships:
        si = index_by_id.get(rel.source_table_id)
        ti = index_by_id.get(rel.target_table_id)
        if si is None or ti is None or si == ti:
            continue
        edges.append((si, ti))

    n = len(nodes)
    center_x = sum(nd.cx for nd in nodes) / n
    center_y = sum(nd.cy for nd in nodes) / n

    for _ in range(max(0, int(iterations))):
        fx = [0.0] * n
        fy = [0.0] * n

        for i in range(n):
            a = nodes[i]
            for j in range(i + 1, n):
                b = nodes[j]
                ux, uy, dist = _unit(a.cx - b.cx, a.cy - b.cy)
                repulsion = REPULSION_STRENGTH / (dist * dist)
                fx[i] += ux * repulsion
                fy[i] += uy * repulsion
                fx[j] -= ux * repulsion
                fy[j] -= uy * repulsion

        for si, ti in edges:
            a = nodes[si]
            b = nodes[ti]
            dx = b.cx - a.cx
            dy = b.cy - a.cy
            raw = math.hypot(dx, dy)
            if raw == 0.0:
                continue
            attraction = ATTRACTION_STRENGTH * raw
            fx[si] += dx / raw * attraction
            fy[si] += dy / raw * attraction
            fx[ti] -= dx / raw * attraction
            fy[ti] -= dy / raw * attraction

        for i, nd in enumerate(nodes):
            fx[i] += (center_x - nd.cx) * CENTER_STRENGTH
            fy[i] += (center_y - nd.cy) * CENTER_STRENGTH

        for i, nd in enumerate(nodes):
            nd.vx = (nd.vx + fx[i]) * FORCE_DAMPING
            nd.vy = (nd.vy + fy[i]) * FORCE_DAMPING
            nd.cx += nd.vx
            nd.cy += nd.vy

    return {nd.table_id: Point(nd.cx - nd.half_w, nd.cy - nd.half_h) for nd in nodes}


def compute_layout(
    kind: str,
    tables: Sequence[Table],
    relationships: Sequence[Relationship],
    *,
    force_iterations: int = FORCE_ITERATIONS,
) -> dict[str, Point]:
    if kind == "grid":
        return grid_layout(tables)
    if kind == "hierarchical":
        return hierarchical_layout(tables)
    if kind == "force":
        logger.debug("Running force layout: tables=%d iterations=%d", len(tables), force_iterations)
        return force_directed_layout(tables, relationships, iterations=force_iterations)
    raise ValueError(
        format_actionable_error(
            "Layout",
            "Kind",
            f"unsupported layout '{kind}'",
            f"choose one of: {', '.join(LAYOUT_KINDS)}",
        )
    )
