"""Command-line entry point.

Usage: txt2ics [file] [-o output.ics] [-m model]
       python -m txt2ics [file] ...
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from txt2ics.config.settings import API_CONFIG, CALENDAR_CONFIG
from txt2ics.core.api_client import GeminiCompletionService
from txt2ics.core.converter import ConversionOptions, debug_enabled, text_to_ics
from txt2ics.exceptions.errors import CompletionTimeoutError, Txt2IcsError
from txt2ics.storage.key_manager import load_api_key, save_api_key

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="txt2ics",
        description="Transform plain text to an .ics file using a language model.",
    )
    parser.add_argument(
        "file", nargs="?", default="-",
        help='Input text file, or "-" to read from stdin (default: -)',
    )
    parser.add_argument(
        "-m", "--model", default=API_CONFIG.model_name,
        help=f"Model to use (default: {API_CONFIG.model_name})",
    )
    parser.add_argument(
        "-o", "--output", default="-",
        help='Output file, or "-" to write to stdout (default: -)',
    )
    parser.add_argument(
        "-z", "--timezone", default=CALENDAR_CONFIG.default_timezone,
        help='Default timezone for events that name none, e.g. "Europe/Paris" or "local"',
    )
    parser.add_argument(
        "--timeout", type=float, default=API_CONFIG.timeout_seconds,
        help="Give up if the model has not answered after this many seconds",
    )
    parser.add_argument(
        "--validate-rrule", action="store_true",
        help="Reject recurrence rules that do not parse instead of passing them through",
    )
    parser.add_argument(
        "--keep-offsets", action="store_true",
        help="Honor inline UTC offsets on events that name no timezone",
    )
    parser.add_argument(
        "--no-publish", action="store_true",
        help="Leave METHOD:PUBLISH out of the calendar header",
    )
    parser.add_argument(
        "--debug", action="store_true",
        help="Print the decoded model output to stderr",
    )
    parser.add_argument(
        "--save-api-key", metavar="KEY",
        help="Store a Gemini API key in the OS keyring (or user config) and exit",
    )
    return parser


def read_input(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    with open(path, encoding="utf-8") as f:
        return f.read()


def write_output(path: str, content: str) -> None:
    if path == "-":
        sys.stdout.write(content)
        sys.stdout.flush()
        return
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(content)


async def convert(text: str, args: argparse.Namespace, service) -> str:
    """Run one conversion, applying the caller's deadline if any."""
    options = ConversionOptions(
        strip_inline_offsets=not args.keep_offsets,
        validate_rrule=args.validate_rrule,
        publish=not args.no_publish,
    )
    conversion = text_to_ics(
        text,
        service=service,
        model=args.model,
        default_timezone=args.timezone,
        options=options,
        debug=args.debug or None,
    )
    if not args.timeout:
        return await conversion
    try:
        return await asyncio.wait_for(conversion, timeout=args.timeout)
    except asyncio.TimeoutError as e:
        raise CompletionTimeoutError(args.timeout) from e


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the command-line tool."""
    args = build_parser().parse_args(argv)

    debug = args.debug or debug_enabled()
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stderr,
    )

    if args.save_api_key is not None:
        if save_api_key(args.save_api_key):
            print("API key saved.", file=sys.stderr)
            return 0
        print("Error: could not save the API key.", file=sys.stderr)
        return 1

    api_key = load_api_key()
    if not api_key:
        print(
            "Error: no Gemini API key found. Set GEMINI_API_KEY or run "
            "'txt2ics --save-api-key KEY'.",
            file=sys.stderr,
        )
        return 1

    try:
        text = read_input(args.file)
        service = GeminiCompletionService(api_key)
        ics = asyncio.run(convert(text, args, service))
        write_output(args.output, ics)
    except Txt2IcsError as e:
        logger.debug("Conversion failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
