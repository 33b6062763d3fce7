# To run:
# python -m schema_canvas.main layout diagram.json --kind force
# python -m schema_canvas.main svg diagram.json --output diagram.svg

from __future__ import annotations

import argparse
import logging
import traceback
from typing import Sequence

from schema_canvas.config import EditorConfig
from schema_canvas.diagram_store import DiagramStore
from schema_canvas.file_bridge import FileSystemBridge, open_document, save_document
from schema_canvas.layout import LAYOUT_KINDS
from schema_canvas.logging_setup import setup_logging
from schema_canvas.svg_export import build_diagram_svg, export_svg_file

logger = logging.getLogger("main")


def build_parser(cfg: EditorConfig) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="schema-canvas", description="ER diagram layout and export tools.")
    parser.add_argument("--log-level", default=cfg.log_level)
    sub = parser.add_subparsers(dest="command", required=True)

    layout = sub.add_parser("layout", help="rearrange tables and save the diagram")
    layout.add_argument("path")
    layout.add_argument("--kind", choices=LAYOUT_KINDS, default=cfg.default_layout)
    layout.add_argument("--output", help="destination JSON (defaults to overwriting the input)")

    svg = sub.add_parser("svg", help="export the diagram as SVG")
    svg.add_argument("path")
    svg.add_argument("--output", required=True)
    svg.add_argument("--hide-types", action="store_true")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    cfg = EditorConfig()
    args = build_parser(cfg).parse_args(argv)
    setup_logging(args.log_level)

    store = DiagramStore(max_undo=cfg.max_undo)
    bridge = FileSystemBridge()
    try:
        opened = open_document(store, bridge, args.path)
        if not opened.ok:
            logger.error("%s", opened.error)
            return 1

        if args.command == "layout":
            store.apply_layout(args.kind, force_iterations=cfg.force_iterations)
            saved = save_document(store, bridge, args.output or args.path)
            if not saved.ok:
                logger.error("%s", saved.error)
                return 1
            return 0

        svg_text = build_diagram_svg(store.get_document(), show_types=not args.hide_types)
        out = export_svg_file(output_path_value=args.output, svg_text=svg_text)
        logger.info("SVG written to %s", out)
        return 0
    except ValueError as exc:
        logger.error("%s", exc)
        if cfg.debug:
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
