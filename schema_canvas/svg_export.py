from __future__ import annotations

from pathlib import Path
from typing import Any

from schema_canvas.diagram_model import Diagram, Note, Relationship, Table
from schema_canvas.errors import format_actionable_error
from schema_canvas.geometry import (
    HEADER_HEIGHT,
    ROW_HEIGHT,
    TABLE_PADDING_LEFT,
    field_column_start,
    relationship_path_for,
    table_size,
)

DEFAULT_NOTE_WIDTH = 180
DEFAULT_NOTE_HEIGHT = 100
NOTE_LINE_HEIGHT = 16
CANVAS_MARGIN = 32


def _svg_error(field: str, issue: str, hint: str) -> str:
    return format_actionable_error("SVG export", field, issue, hint)


def _xml_escape(value: str) -> str:
    return (
        value.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&apos;")
    )


def _num(value: float) -> str:
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return "0" if text in ("-0", "") else text


def note_size(note: Note) -> tuple[float, float]:
    width = note.width if note.width is not None else DEFAULT_NOTE_WIDTH
    height = note.height if note.height is not None else DEFAULT_NOTE_HEIGHT
    return width, height


def compute_diagram_bounds(diagram: Diagram, *, margin: int = CANVAS_MARGIN) -> tuple[float, float, float, float]:
    """Return (min_x, min_y, width, height) covering every table and note plus a margin."""
    boxes: list[tuple[float, float, float, float]] = []
    for table in diagram.tables:
        size = table_size(table)
        boxes.append((table.x, table.y, table.x + size.width, table.y + size.height))
    for note in diagram.notes:
        width, height = note_size(note)
        boxes.append((note.x, note.y, note.x + width, note.y + height))
    if not boxes:
        return 0.0, 0.0, float(margin * 2), float(margin * 2)
    min_x = min(b[0] for b in boxes) - margin
    min_y = min(b[1] for b in boxes) - margin
    max_x = max(b[2] for b in boxes) + margin
    max_y = max(b[3] for b in boxes) + margin
    return min_x, min_y, max_x - min_x, max_y - min_y


def relationship_caption(relationship: Relationship) -> str:
    parts = [p for p in (relationship.name, relationship.cardinality, relationship.label) if p]
    if len(parts) < 2:
        return "".join(parts)
    return f"{parts[0]} ({', '.join(parts[1:])})"


def _table_lines(table: Table, *, show_types: bool) -> list[str]:
    size = table_size(table)
    x1 = table.x
    y1 = table.y
    type_x = x1 + field_column_start(table)
    lines = [
        f'  <rect x="{_num(x1)}" y="{_num(y1)}" width="{_num(size.width)}" height="{_num(size.height)}" '
        'fill="#ffffff" stroke="#556b8a" stroke-width="2" />',
        f'  <rect x="{_num(x1)}" y="{_num(y1)}" width="{_num(size.width)}" height="{HEADER_HEIGHT}" '
        'fill="#dae7f8" stroke="#556b8a" stroke-width="2" />',
        f'  <text x="{_num(x1 + TABLE_PADDING_LEFT)}" y="{_num(y1 + 19)}" '
        'font-family="Segoe UI, Arial, sans-serif" font-size="13" font-weight="bold" '
        f'fill="#1a2a44">{_xml_escape(table.name)}</text>',
    ]
    for idx, f in enumerate(table.fields):
        baseline = y1 + HEADER_HEIGHT + idx * ROW_HEIGHT + 15
        marker = " (PK)" if f.primary_key else ""
        lines.append(
            f'  <text x="{_num(x1 + TABLE_PADDING_LEFT)}" y="{_num(baseline)}" '
            'font-family="Consolas, Courier New, monospace" font-size="12" '
            f'fill="#27374d">{_xml_escape(f.name + marker)}</text>'
        )
        if show_types:
            lines.append(
                f'  <text x="{_num(type_x)}" y="{_num(baseline)}" '
                'font-family="Consolas, Courier New, monospace" font-size="12" '
                f'fill="#6b7a90">{_xml_escape(f.type)}</text>'
            )
    return lines


def _note_lines(note: Note) -> list[str]:
    width, height = note_size(note)
    lines = [
        f'  <rect x="{_num(note.x)}" y="{_num(note.y)}" width="{_num(width)}" height="{_num(height)}" '
        'fill="#fff8c5" stroke="#c9b458" stroke-width="1" />'
    ]
    for idx, text_line in enumerate(note.text.splitlines()):
        y = note.y + 18 + idx * NOTE_LINE_HEIGHT
        if y > note.y + height:
            break
        lines.append(
            f'  <text x="{_num(note.x + 8)}" y="{_num(y)}" font-family="Segoe UI, Arial, sans-serif" '
            f'font-size="12" fill="#4a4420">{_xml_escape(text_line)}</text>'
        )
    return lines


def build_diagram_svg(
    diagram: Diagram,
    *,
    show_relationships: bool = True,
    show_types: bool = True,
    show_notes: bool = True,
) -> str:
    min_x, min_y, width, height = compute_diagram_bounds(diagram)

    lines: list[str] = []
    lines.append('<?xml version="1.0" encoding="UTF-8"?>')
    lines.append(
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{_num(width)}" height="{_num(height)}" '
        f'viewBox="{_num(min_x)} {_num(min_y)} {_num(width)} {_num(height)}">'
    )
    lines.append(
        f'  <rect x="{_num(min_x)}" y="{_num(min_y)}" width="{_num(width)}" height="{_num(height)}" fill="#f3f6fb" />'
    )

    if show_notes:
        for note in diagram.notes:
            lines.extend(_note_lines(note))

    for table in diagram.tables:
        lines.extend(_table_lines(table, show_types=show_types))

    if show_relationships:
        for relationship in diagram.relationships:
            path = relationship_path_for(diagram, relationship)
            if path is None:
                continue
            lines.append(
                f'  <path d="{path.path_d}" fill="none" stroke="#1f5a95" stroke-width="2" />'
            )
            lines.append(f'  <path d="{path.arrowhead_path_d}" fill="#1f5a95" stroke="none" />')
            caption = relationship_caption(relationship)
            if caption:
                mid_x = (path.start.x + path.tip.x) / 2
                mid_y = (path.start.y + path.tip.y) / 2
                lines.append(
                    f'  <text x="{_num(mid_x + 6)}" y="{_num(mid_y - 7)}" '
                    'font-family="Segoe UI, Arial, sans-serif" font-size="10" '
                    f'fill="#1f5a95">{_xml_escape(caption)}</text>'
                )

    lines.append("</svg>")
    return "\n".join(lines) + "\n"


def export_svg_file(*, output_path_value: Any, svg_text: str) -> Path:
    if not isinstance(output_path_value, str) or output_path_value.strip() == "":
        raise ValueError(
            _svg_error(
                "Export path",
                "output path is required",
                "choose a file path ending in .svg",
            )
        )
    output_path = Path(output_path_value.strip())
    ext = output_path.suffix.lower()
    if ext != ".svg":
        raise ValueError(
            _svg_error(
                "Export format",
                f"unsupported extension '{ext or '<none>'}'",
                "use a .svg output file extension",
            )
        )
    output_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        output_path.write_text(svg_text, encoding="utf-8")
    except OSError as exc:
        raise ValueError(
            _svg_error(
                "Export",
                f"failed to write SVG ({exc})",
                "check destination path permissions and retry",
            )
        ) from exc
    return output_path
