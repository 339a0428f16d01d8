"""Command-line front end for testcase_sync.

Every subcommand reads one input (a file path or ``-`` for stdin), writes
its result to stdout or the ``--output`` file, and logs to stderr.  Inputs
may be notation text, step markup, or a JSON-serialised ``Document``; the
format is detected from the file extension and then from the content.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from . import __version__
from .config import Config, load_config
from .config_loader import ensure_config, load_hierarchical_config
from .document import Document
from .file_handler import (
    JSON,
    MARKUP,
    NOTATION,
    detect_input_format,
    read_file_with_encoding,
    validate_file_path,
    validate_output_path,
    write_file,
)
from .logger import setup_logging
from .notation import (
    format_notation,
    pad_default_steps,
    parse_notation,
    validate_notation,
)
from .patch import builder_for_document
from .steps import adopt_ids, decode_steps, encode_steps
from .sync import (
    conflicts_to_json,
    format_conflicts_for_display,
    reconcile,
)
from .sync.resolver import STRATEGY_NAMES
from .validators import validate_document

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Input helpers
# ---------------------------------------------------------------------------


def _read_input(source: str) -> tuple[str, Path | None]:
    """Return (content, path) for a file path, or stdin when *source* is '-'."""
    if source == "-":
        return sys.stdin.read(), None
    path = validate_file_path(source)
    content, encoding = read_file_with_encoding(path)
    logger.debug("Read %s (%s)", path, encoding)
    return content, path


def _load_document(source: str, config: Config) -> Document:
    """Read *source* and turn it into a ``Document`` whatever its format."""
    return _load_with_format(source, config)[0]


def _load_with_format(source: str, config: Config) -> tuple[Document, str]:
    content, path = _read_input(source)
    fmt = detect_input_format(path, content)
    logger.debug("Detected %s input for %s", fmt, source)

    if fmt == JSON:
        document = Document.model_validate_json(content)
    elif fmt == MARKUP:
        document = Document(steps=decode_steps(content))
    else:
        document = parse_notation(content, comment_marker=config.comment_marker)

    if config.pad_empty_steps:
        document = pad_default_steps(document, config.placeholder_step_count)
    return document, fmt


def _emit(text: str, args: argparse.Namespace) -> None:
    """Write *text* to the --output file when given, else to stdout."""
    if not text.endswith("\n"):
        text += "\n"
    output = getattr(args, "output", None)
    if not output:
        sys.stdout.write(text)
        return
    path = validate_output_path(output)
    size = write_file(path, text)
    logger.info("Wrote %d bytes to %s", size, path)


# ---------------------------------------------------------------------------
# Subcommands
# ---------------------------------------------------------------------------


def cmd_parse(args: argparse.Namespace, config: Config) -> int:
    document = _load_document(args.input, config)
    _emit(document.model_dump_json(indent=2), args)
    return 0


def cmd_format(args: argparse.Namespace, config: Config) -> int:
    document = _load_document(args.input, config)
    disabled = [number - 1 for number in args.disabled or []]
    _emit(
        format_notation(
            document, disabled=disabled, comment_marker=config.comment_marker
        ),
        args,
    )
    return 0


def cmd_validate(args: argparse.Namespace, config: Config) -> int:
    content, path = _read_input(args.input)
    fmt = detect_input_format(path, content)

    if fmt == JSON:
        result = validate_document(
            Document.model_validate_json(content),
            config.priority_min,
            config.priority_max,
        )
    elif fmt == MARKUP:
        result = validate_document(
            Document(steps=decode_steps(content)),
            config.priority_min,
            config.priority_max,
        )
    else:
        result = validate_notation(
            content,
            priority_min=config.priority_min,
            priority_max=config.priority_max,
            comment_marker=config.comment_marker,
        )

    if result.valid:
        _emit("Valid", args)
        return 0
    _emit("\n".join(f"- {error}" for error in result.errors), args)
    return 1


def cmd_encode_steps(args: argparse.Namespace, config: Config) -> int:
    document = _load_document(args.input, config)
    _emit(encode_steps(document.steps), args)
    return 0


def cmd_decode_steps(args: argparse.Namespace, config: Config) -> int:
    content, _ = _read_input(args.input)
    steps = decode_steps(content)
    _emit(json.dumps([step.model_dump() for step in steps], indent=2), args)
    return 0


def cmd_patch(args: argparse.Namespace, config: Config) -> int:
    document = _load_document(args.input, config)
    builder = builder_for_document(
        document,
        op=config.patch_operation,
        priority_min=config.patch_priority_min,
        priority_max=config.patch_priority_max,
        custom_field_prefix=config.custom_field_prefix,
    )
    result = builder.validate()
    if not result.valid:
        for error in result.errors:
            print(f"- {error}", file=sys.stderr)
        return 1
    _emit(builder.build_json(), args)
    return 0


def _with_base_ids(document: Document, fmt: str, base: Document) -> Document:
    """Carry base step identifiers over to steps parsed from notation."""
    if fmt != NOTATION:
        return document
    return document.replace(steps=adopt_ids(document.steps, base.steps))


def cmd_reconcile(args: argparse.Namespace, config: Config) -> int:
    base = _load_document(args.base, config)
    client = _with_base_ids(*_load_with_format(args.client, config), base)
    server = _with_base_ids(*_load_with_format(args.server, config), base)

    fields = [f.strip() for f in args.fields.split(",")] if args.fields else None
    result = reconcile(
        base, client, server, strategy=config.strategy, fields=fields
    )
    logger.info(result.summary())

    if args.json:
        payload = {
            "strategy": result.strategy,
            "resolved": result.resolved,
            "conflicts": conflicts_to_json(result.conflicts),
            "merged": result.merged.model_dump(mode="json"),
        }
        _emit(json.dumps(payload, indent=2), args)
    else:
        print(format_conflicts_for_display(result.conflicts), file=sys.stderr)
        _emit(format_notation(result.merged), args)
    return 0


def cmd_init_config(args: argparse.Namespace, config: Config) -> int:
    target = Path(args.path) if args.path else None
    print(ensure_config(target))
    return 0


_COMMANDS = {
    "parse": cmd_parse,
    "format": cmd_format,
    "validate": cmd_validate,
    "encode-steps": cmd_encode_steps,
    "decode-steps": cmd_decode_steps,
    "patch": cmd_patch,
    "reconcile": cmd_reconcile,
    "init-config": cmd_init_config,
}


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def _step_numbers(value: str) -> list[int]:
    """argparse type for a comma-separated list of 1-based step numbers."""
    try:
        numbers = [int(part) for part in value.split(",") if part.strip()]
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"not a list of step numbers: {value!r}"
        ) from None
    if any(number < 1 for number in numbers):
        raise argparse.ArgumentTypeError("step numbers start at 1")
    return numbers


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="testcase-sync",
        description="testcase-sync - author test cases as text and sync them with a tracker",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Notation to JSON document
  testcase-sync parse login.tc

  # Build an update patch for the tracker
  testcase-sync patch login.tc --replace

  # Three-way merge, keeping the client's title and steps
  testcase-sync reconcile base.json mine.tc theirs.json --strategy manual --fields title,steps

  # Re-format with step 2 commented out
  testcase-sync format login.tc --disabled 2 -o login.tc

  # Write a starter config to .testcase_sync/config.yml
  testcase-sync init-config

Use '-' as a file name to read from stdin.  Results go to stdout,
log messages to stderr.
        """,
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--log-file", help="Also write log records to this file")
    parser.add_argument(
        "--log-format",
        choices=("text", "json"),
        help="Log record format (default: text)",
    )
    parser.add_argument(
        "--comment-marker",
        help="Prefix that disables a notation line (default: //)",
    )
    parser.add_argument(
        "--pad-empty-steps",
        action="store_true",
        help="Fill documents without steps with placeholder steps",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"testcase-sync version {__version__}",
    )

    output = argparse.ArgumentParser(add_help=False)
    output.add_argument(
        "-o", "--output", help="Write the result to this file instead of stdout"
    )

    sub = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("parse", "Print the document as JSON"),
        ("validate", "Check the document against the authoring rules"),
        ("encode-steps", "Print the document's steps as tracker markup"),
        ("decode-steps", "Print the steps in tracker markup as JSON"),
    ):
        cmd = sub.add_parser(name, help=help_text, parents=[output])
        cmd.add_argument("input", help="Input file, or '-' for stdin")

    fmt = sub.add_parser(
        "format", help="Print the document as notation", parents=[output]
    )
    fmt.add_argument("input", help="Input file, or '-' for stdin")
    fmt.add_argument(
        "--disabled",
        type=_step_numbers,
        help="Comma-separated step numbers to write commented out",
    )

    patch = sub.add_parser(
        "patch", help="Print the JSON-Patch batch for the document", parents=[output]
    )
    patch.add_argument("input", help="Input file, or '-' for stdin")
    patch.add_argument(
        "--replace",
        action="store_true",
        help="Emit 'replace' operations (update) instead of 'add' (create)",
    )

    rec = sub.add_parser(
        "reconcile",
        help="Three-way merge of base, client and server",
        parents=[output],
    )
    rec.add_argument("base", help="Common ancestor document")
    rec.add_argument("client", help="Locally edited document")
    rec.add_argument("server", help="Freshly fetched server document")
    rec.add_argument("--strategy", choices=STRATEGY_NAMES, help="Merge strategy")
    rec.add_argument(
        "--fields",
        help="Comma-separated fields taken from the client (manual strategy)",
    )
    rec.add_argument(
        "--json", action="store_true", help="Print the full result as JSON"
    )

    init = sub.add_parser(
        "init-config", help="Create a commented starter config file"
    )
    init.add_argument(
        "path",
        nargs="?",
        help="Where to create it (default: .testcase_sync/config.yml)",
    )

    return parser


def _config_overrides(args: argparse.Namespace) -> dict:
    overrides = {}
    if args.comment_marker:
        overrides["comment_marker"] = args.comment_marker
    if args.pad_empty_steps:
        overrides["pad_empty_steps"] = True
    if args.log_file:
        overrides["log_file"] = args.log_file
    if args.log_format:
        overrides["log_format"] = args.log_format
    if args.debug:
        overrides["debug"] = True
    if getattr(args, "strategy", None):
        overrides["strategy"] = args.strategy
    if getattr(args, "replace", False):
        overrides["patch_operation"] = "replace"
    return overrides


def main(argv: list[str] | None = None) -> int:
    """Parse *argv*, run the subcommand, and return the exit code."""
    args = build_parser().parse_args(argv)

    load_dotenv()
    try:
        config = load_config(
            cli_overrides=_config_overrides(args),
            yaml_fallbacks=load_hierarchical_config(),
        )
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    setup_logging(
        debug=config.debug,
        log_file=config.log_file,
        debug_format=config.log_format,
        level=config.log_level,
    )

    try:
        return _COMMANDS[args.command](args, config)
    except ValueError as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1


def run() -> None:
    """Console-script entry point."""
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    run()
