from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from . import api
from .pdf_format import LayoutConfig, load_config

STDOUT = "-"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="MarkdownPdf",
        description="Convert Markdown into a PDF document.",
    )
    parser.add_argument("input", type=str, help="Path to Markdown file")
    parser.add_argument("-o", "--output", type=str, help="Output PDF path, or '-' for standard output")
    parser.add_argument("--config", type=str, help="YAML file with page layout options")
    parser.add_argument(
        "--flavor",
        choices=sorted(api.FLAVORS),
        default="native",
        help="Markdown parser to use",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def configure_logging(verbose: bool = False) -> None:
    """Log to stderr so standard output stays free for PDF bytes."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(message)s",
        stream=sys.stderr,
    )


def resolve_output_path(input_path: Path, output: str | None) -> Path:
    if not output:
        return input_path.with_suffix(".pdf")
    out_path = Path(output).expanduser()
    if out_path.is_dir():
        return out_path / f"{input_path.stem}.pdf"
    return out_path


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    configure_logging(verbose=args.verbose)
    input_path = Path(args.input).expanduser()
    if not input_path.exists():
        raise FileNotFoundError(f"Input file not found: {input_path}")
    config = load_config(args.config) if args.config else LayoutConfig()

    logging.info("Reading %s", input_path)
    markdown_text = input_path.read_text(encoding="utf-8")
    logging.debug("Markdown length: %d chars", len(markdown_text))

    logging.info("Parsing markdown (%s)...", args.flavor)
    document = api.parse(markdown_text, flavor=args.flavor)

    if args.output == STDOUT:
        logging.info("Writing PDF to standard output")
        api.write(document, sys.stdout.buffer, config)
        return

    output_path = resolve_output_path(input_path, args.output)
    logging.info("Rendering PDF to %s", output_path)
    api.write(document, output_path, config)

    logging.info("Done. Saved to %s", output_path)


if __name__ == "__main__":
    main()
