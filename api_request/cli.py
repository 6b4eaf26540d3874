"""CLI entry point for api-request.

Sub-commands inspect path templates and encodings, and render requests from
a declarative endpoint table without sending them.
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml


def parse_argument(value: str) -> tuple[str, str]:
    """Parse ATTRIBUTE=VALUE format.

    Raises:
        argparse.ArgumentTypeError: If format is invalid.
    """
    if "=" not in value:
        raise argparse.ArgumentTypeError(
            f"Invalid format '{value}'. Expected ATTRIBUTE=VALUE (e.g., 'owner=apache')"
        )
    attribute, _, arg_value = value.partition("=")
    if not attribute:
        raise argparse.ArgumentTypeError(f"Invalid format '{value}'. Attribute cannot be empty.")
    return (attribute, arg_value)


@dataclass
class SegmentsArgs:
    """Parsed arguments for segments mode."""

    template: str
    decode: bool
    ignore_last_slash: bool


@dataclass
class VariablesArgs:
    """Parsed arguments for variables mode."""

    template: str


@dataclass
class EncodeArgs:
    """Parsed arguments for encode mode."""

    value: str
    query: bool
    partial: bool


@dataclass
class RenderArgs:
    """Parsed arguments for render mode."""

    endpoints: Path
    call: str
    arguments: dict[str, str]
    base_url: str | None


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with its sub-commands."""
    parser = argparse.ArgumentParser(
        prog="api-request",
        description="Build HTTP request descriptions from path templates and declarative endpoint tables.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        default=False,
        help="Log synthesis decisions to stderr",
    )

    subparsers = parser.add_subparsers(dest="command", required=True, help="Mode")

    segments_parser = subparsers.add_parser(
        "segments",
        help="Split a path template into segments, keeping template variables whole",
    )
    segments_parser.add_argument("template", help="Path template, e.g. /my/path/{a:b/c}")
    segments_parser.add_argument(
        "--no-decode",
        action="store_false",
        dest="decode",
        default=True,
        help="Do not percent-decode segments",
    )
    segments_parser.add_argument(
        "--keep-last-slash",
        action="store_false",
        dest="ignore_last_slash",
        default=True,
        help="Report a trailing '/' as a '/' segment instead of an empty one",
    )

    variables_parser = subparsers.add_parser(
        "variables",
        help="List the template variables of a path template",
    )
    variables_parser.add_argument("template", help="Path template")

    encode_parser = subparsers.add_parser(
        "encode",
        help="Percent-encode a path or query component",
    )
    encode_parser.add_argument("value", help="Text to encode")
    encode_parser.add_argument(
        "--query",
        action="store_true",
        default=False,
        help="Use query rules (default: path rules)",
    )
    encode_parser.add_argument(
        "--partial",
        action="store_true",
        default=False,
        help="Keep existing %%XX triples",
    )

    render_parser = subparsers.add_parser(
        "render",
        help="Render the request for one endpoint call without sending it",
    )
    render_parser.add_argument(
        "--endpoints",
        type=Path,
        required=True,
        help="Path to endpoint table (YAML)",
    )
    render_parser.add_argument(
        "--call",
        type=str,
        required=True,
        help="Endpoint name in the table",
    )
    render_parser.add_argument(
        "--arg",
        type=parse_argument,
        action="append",
        default=[],
        metavar="ATTRIBUTE=VALUE",
        dest="arguments",
        help="Argument for the call (can be repeated)",
    )
    render_parser.add_argument(
        "--base-url",
        type=str,
        default=None,
        dest="base_url",
        help="Prefix the URI with this base URL",
    )

    return parser


def parse_args(argv: list[str] | None = None) -> tuple[bool, SegmentsArgs | VariablesArgs | EncodeArgs | RenderArgs]:
    """Parse command line arguments. Returns (verbose, mode arguments)."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "segments":
        return args.verbose, SegmentsArgs(
            template=args.template,
            decode=args.decode,
            ignore_last_slash=args.ignore_last_slash,
        )
    if args.command == "variables":
        return args.verbose, VariablesArgs(template=args.template)
    if args.command == "encode":
        return args.verbose, EncodeArgs(value=args.value, query=args.query, partial=args.partial)
    return args.verbose, RenderArgs(
        endpoints=args.endpoints,
        call=args.call,
        arguments=dict(args.arguments),
        base_url=args.base_url,
    )


def run_segments(args: SegmentsArgs) -> int:
    from api_request.templates import get_path_segments

    for segment in get_path_segments(args.template, args.decode, args.ignore_last_slash):
        print(segment.path)
    return 0


def run_variables(args: VariablesArgs) -> int:
    from api_request.templates import template_variables

    for name in template_variables(args.template):
        print(name)
    return 0


def run_encode(args: EncodeArgs) -> int:
    from api_request.encoding import encode_partially_encoded, path_encode, query_encode

    if args.partial:
        print(encode_partially_encoded(args.value, args.query))
    elif args.query:
        print(query_encode(args.value))
    else:
        print(path_encode(args.value))
    return 0


def _convert_arguments(descriptor: Any, arguments: dict[str, str]) -> dict[str, Any]:
    """Body-like arguments are parsed as YAML (so JSON works too); others stay strings."""
    from api_request.models import Role

    converted: dict[str, Any] = {}
    for attribute, value in arguments.items():
        param = descriptor.param(attribute)
        if param is not None and param.role in (Role.BODY, Role.UNCLASSIFIED):
            try:
                converted[attribute] = yaml.safe_load(value)
            except yaml.YAMLError:
                converted[attribute] = value
        else:
            converted[attribute] = value
    return converted


def run_render(args: RenderArgs) -> int:
    """Render one endpoint call: method, URI, headers and body."""
    from api_request.config_loader import ConfigError, load_endpoint_table
    from api_request.errors import RequestSynthesisError
    from api_request.request import RequestModel

    try:
        table = load_endpoint_table(args.endpoints)
    except ConfigError as e:
        print(f"Error loading endpoint table: {e}", file=sys.stderr)
        return 1
    except RequestSynthesisError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    descriptor = table.endpoints.get(args.call)
    if descriptor is None:
        available = ", ".join(table.endpoints.keys())
        print(f"Error: Endpoint '{args.call}' not found. Available: {available}", file=sys.stderr)
        return 1

    try:
        request = RequestModel.from_call(
            descriptor,
            kwargs=_convert_arguments(descriptor, args.arguments),
            settings=table.settings,
        )
        uri = request.uri()
    except (RequestSynthesisError, TypeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.base_url:
        uri = args.base_url.rstrip("/") + uri
    method = request.method.value if request.method else "-"
    print(f"{method} {uri}")
    for name, value in request.header_params.items():
        print(f"{name}: {value}")
    if request.has_body:
        print()
        print(request.body)
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    verbose, args = parse_args(argv)
    if verbose:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr, format="%(name)s: %(message)s")

    if isinstance(args, SegmentsArgs):
        return run_segments(args)
    if isinstance(args, VariablesArgs):
        return run_variables(args)
    if isinstance(args, EncodeArgs):
        return run_encode(args)
    return run_render(args)


if __name__ == "__main__":
    sys.exit(main())
