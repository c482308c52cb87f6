"""
Command-line interface for the document intake service.

Usage:
    python -m docintake classify FILE [FILE ...]
    python -m docintake classify-text --text TEXT [--filename NAME]
    python -m docintake serve [--host HOST] [--port PORT]
"""

import argparse
import json
import os
import sys
from typing import Any, Dict

from docintake.config import get_settings
from docintake.middleware.logging import configure_logging
from docintake.services.document_classifier import classify_document
from docintake.services.text_extractor import SUPPORTED_EXTENSIONS, extract_text


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="docintake",
        description="Document Intake CLI - Classify documents locally or run the API"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    classify_parser = subparsers.add_parser(
        "classify",
        help="Extract and classify local files"
    )
    classify_parser.add_argument(
        "paths",
        nargs="+",
        help=f"Files to classify ({', '.join(SUPPORTED_EXTENSIONS)})"
    )

    text_parser = subparsers.add_parser(
        "classify-text",
        help="Classify literal text"
    )
    text_parser.add_argument(
        "--text",
        "-t",
        type=str,
        required=True,
        help="Document text"
    )
    text_parser.add_argument(
        "--filename",
        "-f",
        type=str,
        default="",
        help="Filename the text came from (used for keyword matching)"
    )

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP API with uvicorn"
    )
    serve_parser.add_argument("--host", type=str, default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port (default: 8000)")

    return parser


def _print_json(data: Dict[str, Any]) -> None:
    print(json.dumps(data, ensure_ascii=False))


def classify_command(args: argparse.Namespace) -> int:
    """
    Classify each file and print one JSON object per line.

    Returns:
        int: Exit code (0 when every file was classified, 1 otherwise)
    """
    exit_code = 0
    for path in args.paths:
        if not os.path.isfile(path):
            print(f"Error: File not found: {path}", file=sys.stderr)
            exit_code = 1
            continue

        text = extract_text(path)
        result = classify_document(text, os.path.basename(path))
        _print_json({"file": path, **result.model_dump(mode="json")})

    return exit_code


def classify_text_command(args: argparse.Namespace) -> int:
    if not args.text.strip():
        print("Error: --text must not be empty", file=sys.stderr)
        return 1

    result = classify_document(args.text, args.filename)
    _print_json(result.model_dump(mode="json"))
    return 0


def serve_command(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("docintake.main:app", host=args.host, port=args.port)
    return 0


def main() -> int:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 1

    try:
        settings = get_settings()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    if args.command == "serve":
        configure_logging(settings.log_level)
    else:
        # stdout is reserved for JSON results
        configure_logging("WARNING", stream=sys.stderr)

    if args.command == "classify":
        return classify_command(args)
    elif args.command == "classify-text":
        return classify_text_command(args)
    elif args.command == "serve":
        return serve_command(args)
    else:
        print(f"Unknown command: {args.command}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
