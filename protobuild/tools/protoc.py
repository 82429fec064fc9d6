# SPDX-License-Identifier: MIT
"""Generator wrapper around protoc.

This is the program proto compiler actions run. It takes the flags
assembled by the generator invoker (usually through a -param=FILE
parameter file), runs protoc with a single plugin into a scratch
directory and then moves every generated file onto the output location
declared for it with -expected.

Generated files are matched to expected outputs by base name. Expected
outputs the plugin did not create are written as placeholder files that
the Go compiler ignores, since some plugins only emit files for schemas
with relevant definitions (for example services). Generated files that
were not expected, and expected outputs that share a base name, are
errors.

Usage:
    protobuild-protoc -param=build/params/ProtoGen-1.params
"""

from __future__ import annotations

import argparse
import logging
import os
import shutil
import subprocess
import sys
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from protobuild.core.args import read_param_file
from protobuild.core.errors import GenerateError, GeneratorFailedError, ProtobuildError

logger = logging.getLogger(__name__)

PARAM_PREFIX = "-param="
PLACEHOLDER = "// +build ignore\n\npackage ignore\n"


@dataclass
class WrapperOptions:
    """Parsed generator wrapper flags."""

    protoc: str
    importpath: str
    out_path: str
    plugin: str
    options: list[str] = field(default_factory=list)
    descriptor_sets: list[str] = field(default_factory=list)
    expected: list[str] = field(default_factory=list)
    imports: list[str] = field(default_factory=list)
    files: list[str] = field(default_factory=list)


def expand_params(argv: list[str]) -> list[str]:
    """Replace -param=FILE arguments with the arguments stored in FILE."""
    result: list[str] = []
    for arg in argv:
        if arg.startswith(PARAM_PREFIX):
            result.extend(read_param_file(arg[len(PARAM_PREFIX) :]))
        else:
            result.append(arg)
    return result


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="protobuild-protoc",
        description="Run protoc with one plugin and collect its expected outputs.",
        allow_abbrev=False,
    )
    parser.add_argument("-protoc", required=True, help="The protoc binary")
    parser.add_argument(
        "-importpath", required=True, help="Import path of the generated library"
    )
    parser.add_argument(
        "-out_path", required=True, help="Root directory outputs are written under"
    )
    parser.add_argument("-plugin", required=True, help="The protoc plugin binary")
    parser.add_argument(
        "-option", dest="options", action="append", default=[], help="Plugin option"
    )
    parser.add_argument(
        "-descriptor_set",
        dest="descriptor_sets",
        action="append",
        default=[],
        help="Descriptor set of a dependency",
    )
    parser.add_argument(
        "-expected", action="append", default=[], help="Expected output file"
    )
    parser.add_argument(
        "-import",
        dest="imports",
        action="append",
        default=[],
        help="Mapping proto/path.proto=go/import/path",
    )
    parser.add_argument("files", nargs="*", help="Import paths of files to generate")
    return parser


def parse_args(argv: list[str]) -> WrapperOptions:
    ns = build_parser().parse_args(expand_params(argv))
    return WrapperOptions(
        protoc=ns.protoc,
        importpath=ns.importpath,
        out_path=ns.out_path,
        plugin=ns.plugin,
        options=ns.options,
        descriptor_sets=ns.descriptor_sets,
        expected=ns.expected,
        imports=ns.imports,
        files=ns.files,
    )


def plugin_name(plugin: str) -> str:
    """The name protoc knows a plugin by: protoc-gen-NAME[.exe] -> NAME."""
    name = Path(plugin).name.removesuffix(".exe")
    return name.removeprefix("protoc-gen-")


def protoc_command(opts: WrapperOptions, gen_dir: Path) -> list[str]:
    """Build the protoc command line generating into gen_dir."""
    name = plugin_name(opts.plugin)
    plugin_options = list(opts.options)
    plugin_options.extend(f"M{mapping}" for mapping in opts.imports)
    out = gen_dir.as_posix()
    if plugin_options:
        out = ",".join(plugin_options) + ":" + out
    cmd = [opts.protoc]
    if opts.descriptor_sets:
        cmd.append(f"--descriptor_set_in={os.pathsep.join(opts.descriptor_sets)}")
    cmd += [
        f"--plugin=protoc-gen-{name}={opts.plugin}",
        f"--{name}_out={out}",
    ]
    cmd.extend(opts.files)
    return cmd


def generated_files(gen_dir: Path, extensions: set[str]) -> list[Path]:
    """Files under gen_dir with one of extensions, relative to gen_dir."""
    result = []
    for path in sorted(gen_dir.rglob("*")):
        if path.is_file() and path.suffix in extensions:
            result.append(path.relative_to(gen_dir))
    return result


def collect_outputs(opts: WrapperOptions, gen_dir: Path) -> None:
    """Move generated files onto their expected locations.

    Raises:
        GenerateError: If expected outputs share a base name or a file
            was generated that no output expects.
    """
    problems: list[str] = []
    by_base: dict[str, str] = {}
    for expected in opts.expected:
        base = Path(expected).name
        if base in by_base:
            problems.append(
                f"Multiple outputs map to {base}:\n    {by_base[base]}\n    {expected}"
            )
            continue
        by_base[base] = expected

    extensions = {Path(e).suffix for e in opts.expected}
    moves: dict[str, Path] = {}
    for rel in generated_files(gen_dir, extensions):
        target = by_base.get(rel.name)
        if target is None:
            problems.append(f"Unexpected output: {rel.as_posix()}")
            continue
        if target in moves:
            problems.append(f"Multiple generated files map to {target}")
            continue
        moves[target] = rel

    # Nothing is written until every generated file has a place
    if problems:
        raise GenerateError(
            f"Error in {Path(opts.plugin).name} for {opts.importpath}\n"
            + "\n".join(problems)
        )

    for target, rel in moves.items():
        dest = Path(target)
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(gen_dir / rel, dest)
        logger.debug("%s -> %s", rel.as_posix(), target)

    for expected in opts.expected:
        if expected in moves:
            continue
        # Some plugins only create output files if the proto source files
        # have relevant definitions (e.g. services for grpc).
        logger.info("%s was not generated, writing a placeholder", expected)
        dest = Path(expected)
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_text(PLACEHOLDER)


def run(argv: list[str]) -> None:
    """Run the wrapper.

    Raises:
        GeneratorFailedError: If protoc exits with non-zero status.
        GenerateError: If the generated files do not match the expected ones.
    """
    opts = parse_args(argv)
    out_path = Path(opts.out_path or ".")
    out_path.mkdir(parents=True, exist_ok=True)

    with tempfile.TemporaryDirectory(dir=out_path, prefix=".protoc-") as tmp:
        gen_dir = Path(tmp)
        cmd = protoc_command(opts, gen_dir)
        logger.debug("Running: %s", " ".join(cmd))
        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except OSError as e:
            raise GeneratorFailedError(cmd, -1, str(e)) from e
        if result.returncode != 0:
            raise GeneratorFailedError(cmd, result.returncode, result.stderr)
        if result.stderr:
            sys.stderr.write(result.stderr)
        collect_outputs(opts, gen_dir)


def main(argv: list[str] | None = None) -> int:
    """Entry point for protobuild-protoc."""
    from protobuild.cli import setup_logging

    setup_logging(verbose=bool(os.environ.get("PROTOBUILD_VERBOSE")))
    try:
        run(sys.argv[1:] if argv is None else argv)
    except ProtobuildError as e:
        logger.error("%s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
