#!/usr/bin/env python3
"""flowsketch CLI - parse, validate and export flowchart files, or serve the API."""

import argparse
import json
import logging
import sys
from pathlib import Path

from . import config
from .core.export import EmptyDiagramError, ExportError, export_png, export_svg, to_data_uri
from .core.parser import load
from .core.validation import validate_graph, validation_summary

logger = logging.getLogger(__name__)


def _json_out(data) -> int:
    print(json.dumps(data))
    return 0


def _error_out(message: str) -> int:
    print(json.dumps({"status": "error", "error": message}))
    return 1


def _read_source(path: str) -> str:
    """Read flowchart text from a file, or from stdin for '-'."""
    if path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8")


# ── Commands ─────────────────────────────────────────────────────────────────

def cmd_parse(args) -> int:
    graph = load(_read_source(args.file))
    return _json_out({
        "success": True,
        "direction": graph.direction,
        "diagram": graph.snapshot()
    })


def cmd_validate(args) -> int:
    graph = load(_read_source(args.file))
    issues = validate_graph(graph)
    return _json_out({
        "success": True,
        "issues": [issue.to_dict() for issue in issues],
        "summary": validation_summary(issues)
    })


def cmd_export(args) -> int:
    graph = load(_read_source(args.file))
    output = Path(args.output)

    if args.format == "png":
        data = export_png(graph, scale=args.scale, padding=args.padding)
        output.write_bytes(data)
        size = len(data)
    else:
        svg = export_svg(graph, padding=args.padding)
        if args.data_uri:
            svg = to_data_uri(svg)
        output.write_text(svg, encoding="utf-8")
        size = len(svg)

    logger.info("Wrote %s export to %s", args.format, output)
    return _json_out({
        "success": True,
        "format": args.format,
        "output": str(output),
        "bytes": size
    })


def cmd_serve(args) -> int:
    from .backend.main import run
    run(host=args.host, port=args.port)
    return 0


# ── Main ─────────────────────────────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="flowsketch", description="flowsketch diagram CLI")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("parse", help="Parse and lay out a flowchart file")
    p.add_argument("file", help="Flowchart file, or '-' for stdin")

    p = sub.add_parser("validate", help="Report structural issues")
    p.add_argument("file", help="Flowchart file, or '-' for stdin")

    p = sub.add_parser("export", help="Export a flowchart as SVG or PNG")
    p.add_argument("file", help="Flowchart file, or '-' for stdin")
    p.add_argument("--format", choices=["svg", "png"], default="svg")
    p.add_argument("-o", "--output", required=True)
    p.add_argument("--scale", type=float, default=config.EXPORT_SCALE)
    p.add_argument("--padding", type=float, default=config.EXPORT_PADDING)
    p.add_argument("--data-uri", action="store_true", help="Write SVG as a base64 data URI")

    p = sub.add_parser("serve", help="Run the HTTP/WebSocket backend")
    p.add_argument("--host", default=config.HOST)
    p.add_argument("--port", type=int, default=config.PORT)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    cmd_map = {
        "parse": cmd_parse,
        "validate": cmd_validate,
        "export": cmd_export,
        "serve": cmd_serve,
    }
    try:
        return cmd_map[args.command](args)
    except OSError as e:
        return _error_out(f"File error: {e}")
    except UnicodeDecodeError as e:
        return _error_out(f"File is not valid UTF-8: {e}")
    except EmptyDiagramError as e:
        return _error_out(str(e))
    except ExportError as e:
        return _error_out(f"Export failed: {e}")


if __name__ == "__main__":
    sys.exit(main())
