"""
rmoverlay command line.

Overlay the pen strokes of a tablet notebook bundle onto its PDF.

Usage:
    rmoverlay notes.zip notes.pdf
    rmoverlay ~/xochitl/d34df12d-e72b-4939-a791-5b34b3a810e7 out.pdf -t grid.pdf
    rmoverlay notes.zip out.pdf -s pens.yaml -c red -c empty -c "#963387"
    rmoverlay notes.zip out.pdf -v --log-file logs/rmoverlay.log --log-json

Exit status is 0 on success and 1 on any error that prevented the PDF from
being written.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

from rmoverlay import __version__
from rmoverlay.bundle.composer import CompositionError
from rmoverlay.bundle.filesystem import BundleError
from rmoverlay.convert import convert
from rmoverlay.lines.decoder import FormatError
from rmoverlay.pens.config import StyleConfigError
from rmoverlay.render.pdf_surface import SurfaceError
from rmoverlay.utils.logging_config import install_excepthook, setup_logging, shutdown

logger = logging.getLogger(__name__)

CONVERSION_ERRORS = (
    BundleError,
    CompositionError,
    FormatError,
    StyleConfigError,
    SurfaceError,
    OSError,
    RuntimeError,
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rmoverlay",
        description=__doc__,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("input", help="Bundle .zip, or <directory>/<uuid> of an unpacked bundle")
    parser.add_argument("output", help="PDF file to write")
    parser.add_argument(
        "-t", "--template",
        help="Single-page PDF used for inserted pages and bundles without a PDF",
    )
    parser.add_argument(
        "--no-default-template",
        action="store_true",
        help="Fail instead of using the built-in A4 page when a template is needed",
    )
    parser.add_argument("-s", "--settings", help="Pen configuration YAML file")
    parser.add_argument(
        "-c", "--colour", "--color",
        dest="colours",
        action="append",
        default=[],
        metavar="COLOUR",
        help="Colour for the next layer (name, #hex, rgb() or 'empty'); repeat per layer",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Abort on the first lines file that cannot be decoded",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--log-file", help="Also log to this file")
    parser.add_argument("--log-json", action="store_true", help="JSON lines in the log file")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    setup_logging(
        log_level="DEBUG" if args.verbose else "INFO",
        log_file=args.log_file,
        json=args.log_json,
        color=sys.stderr.isatty(),
        quiet_libs=["PIL"],
        context={"app": "rmoverlay"},
    )
    install_excepthook()

    try:
        convert(
            args.input,
            args.output,
            template=args.template,
            settings=args.settings,
            layer_colors=args.colours,
            strict=args.strict,
            use_default_template=not args.no_default_template,
        )
    except CONVERSION_ERRORS as e:
        logger.error("%s: %s", type(e).__name__, e)
        return 1
    finally:
        shutdown()
    return 0


if __name__ == "__main__":
    sys.exit(main())
