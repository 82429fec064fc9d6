# SPDX-License-Identifier: MIT
"""Command-line interface for protobuild."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from protobuild.core.errors import ProtobuildError

# Set up logging
logger = logging.getLogger("protobuild")


def setup_logging(verbose: bool = False, debug: bool = False) -> None:
    """Configure logging based on verbosity level."""
    if debug:
        level = logging.DEBUG
        fmt = "%(levelname)s: %(name)s: %(message)s"
    elif verbose:
        level = logging.INFO
        fmt = "%(levelname)s: %(message)s"
    else:
        level = logging.WARNING
        fmt = "%(levelname)s: %(message)s"

    logging.basicConfig(level=level, format=fmt, stream=sys.stderr)


def cmd_configure(args: argparse.Namespace) -> int:
    """Find the generation tools and cache their locations.

    Resolves protoc, the protoc plugin and the generator wrapper, and
    writes them to the configuration cache in the build directory.
    """
    setup_logging(args.verbose, args.debug)

    from protobuild.configure.config import Configure

    config = Configure(build_dir=Path(args.build_dir))
    try:
        compiler_config = config.compiler_config(
            protoc=args.protoc, plugin=args.plugin, go_protoc=args.go_protoc
        )
    except ProtobuildError as e:
        logger.error("%s", e)
        return 1

    # find_program already recorded each tool in the cache
    config.save()

    print(f"protoc:    {compiler_config.protoc}")
    print(f"plugin:    {compiler_config.plugin}")
    print(f"go_protoc: {compiler_config.go_protoc}")
    return 0


def cmd_protoc(args: argparse.Namespace) -> int:
    """Run the generator wrapper with the remaining arguments."""
    setup_logging(args.verbose, args.debug)

    from protobuild.tools import protoc

    try:
        protoc.run(args.wrapper_args)
    except ProtobuildError as e:
        logger.error("%s", e)
        return 1
    return 0


def cmd_enumfilter(args: argparse.Namespace) -> int:
    """Run the enum filter plugin on stdin/stdout."""
    # Plugin output goes to stdout; only warnings go to stderr
    setup_logging(False, args.debug)

    from protobuild.plugins import enumfilter

    plugin_args: list[str] = []
    if args.base:
        plugin_args += ["--base", args.base]
    if args.augment:
        plugin_args += ["--augment", args.augment]
    return enumfilter.main(plugin_args)


def add_common_args(parser: argparse.ArgumentParser) -> None:
    """Add common arguments to a parser."""
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument("--debug", action="store_true", help="Debug output")


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the protobuild CLI."""
    parser = argparse.ArgumentParser(
        prog="protobuild",
        description="Generate sources from protocol buffer schemas.",
        epilog="Run 'protobuild <command> --help' for command-specific help.",
    )
    from protobuild import __version__

    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # protobuild configure
    configure_parser = subparsers.add_parser(
        "configure", help="Find generation tools and cache their locations"
    )
    add_common_args(configure_parser)
    configure_parser.add_argument(
        "-B", "--build-dir", default="build", help="Build directory (default: build)"
    )
    configure_parser.add_argument("--protoc", default="protoc", help="protoc binary")
    configure_parser.add_argument(
        "--plugin", default="protoc-gen-go", help="protoc plugin binary"
    )
    configure_parser.add_argument(
        "--go-protoc", default="protobuild-protoc", help="Generator wrapper"
    )
    configure_parser.set_defaults(func=cmd_configure)

    # protobuild protoc
    protoc_parser = subparsers.add_parser(
        "protoc", help="Run the generator wrapper (same as protobuild-protoc)"
    )
    add_common_args(protoc_parser)
    protoc_parser.set_defaults(func=cmd_protoc)

    # protobuild enumfilter
    enum_parser = subparsers.add_parser(
        "enumfilter", help="Run the enum filter protoc plugin on stdin/stdout"
    )
    add_common_args(enum_parser)
    enum_parser.add_argument("--base", help="Plugin for the baseline pass")
    enum_parser.add_argument("--augment", help="Plugin for the augmented pass")
    enum_parser.set_defaults(func=cmd_enumfilter)

    # Wrapper flags (usually -param=FILE) are passed through to protoc
    args, extra = parser.parse_known_args(argv)
    if args.command == "protoc":
        args.wrapper_args = extra
    elif extra:
        parser.error(f"unrecognized arguments: {' '.join(extra)}")

    if args.command is None:
        parser.print_help()
        return 1

    # Run the specified command
    result: int = args.func(args)
    return result


if __name__ == "__main__":
    sys.exit(main())
