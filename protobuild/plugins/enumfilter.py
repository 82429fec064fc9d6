# SPDX-License-Identifier: MIT
"""A protoc plugin that adds enum-extension output for annotated files.

The plugin runs two generation passes over one CodeGeneratorRequest:

1. A baseline pass over every file, with gogo's stringer options turned
   off, producing ordinary output.
2. An augmenting pass restricted to the files that declare an enum value
   carrying the dbenum marker, with outputs renamed to the augmented
   suffix.

Every file always gets baseline output. Only annotated files also get
augmented output, so the two outputs are independently importable units.
The second pass is skipped entirely when no file is annotated.

Usage as a protoc plugin:
    protoc --plugin=protoc-gen-enumfilter=$(which protoc-gen-enumfilter) \\
        --enumfilter_out=out foo.proto

The wrapped generators are taken from PROTOBUILD_ENUMFILTER_BASE and
PROTOBUILD_ENUMFILTER_AUGMENT (build variables or environment).
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Iterable
from enum import Enum
from typing import BinaryIO

from protobuild.core.errors import GeneratorFailedError, PluginError
from protobuild.plugins.generator import (
    CodeGenerator,
    CodeGeneratorRequest,
    CodeGeneratorResponse,
    PluginProcess,
    check_response,
    error_response,
    read_request,
    rename_outputs,
    write_response,
)
from protobuild.plugins.options import BoolOption

logger = logging.getLogger(__name__)

# Files left untouched by the baseline option changes
WELL_KNOWN_EXCLUDES = ("google/protobuf/descriptor.proto",)

# gogoproto FileOptions extensions
GOPROTO_STRINGER_ALL = BoolOption("gogoproto.goproto_stringer_all", 63003)
GOPROTO_ENUM_STRINGER_ALL = BoolOption("gogoproto.goproto_enum_stringer_all", 63021)

# EnumValueOptions extension marking values that need augmented output.
# The number is part of the plugin's contract with schema authors.
DBENUM = BoolOption("dbenum.enumvalue", 65020)

PRIMARY_SUFFIX = ".pb.go"
AUGMENTED_SUFFIX = "_dbenum.pb.go"

DEFAULT_BASE_PLUGIN = "protoc-gen-gogo"
DEFAULT_AUGMENT_PLUGIN = "protoc-gen-dbenum"


class PluginState(Enum):
    IDLE = "idle"
    BASELINE_GENERATED = "baseline_generated"
    FILTERING = "filtering"
    DONE = "done"
    SKIPPED_NO_MATCHES = "skipped_no_matches"


def has_marker(values: Iterable, marker: BoolOption = DBENUM) -> bool:
    """True if any enum value sets marker to true."""
    for value in values:
        if value.HasField("options") and marker.get(value.options):
            return True
    return False


def marked_files(
    request: CodeGeneratorRequest, marker: BoolOption = DBENUM
) -> set[str]:
    """Names of all files in request with a marked enum value."""
    names: set[str] = set()
    for file in request.proto_file:
        for enum in file.enum_type:
            if has_marker(enum.value, marker):
                names.add(file.name)
                break
    return names


def only_marked_files(
    request: CodeGeneratorRequest,
    base_files: Iterable[str],
    marker: BoolOption = DBENUM,
) -> CodeGeneratorRequest:
    """A copy of request generating only the marked files among base_files.

    The order of base_files is kept.
    """
    marked = marked_files(request, marker)
    restricted = CodeGeneratorRequest()
    restricted.CopyFrom(request)
    del restricted.file_to_generate[:]
    restricted.file_to_generate.extend(f for f in base_files if f in marked)
    return restricted


def turn_off_stringers(
    request: CodeGeneratorRequest, excludes: Iterable[str] = WELL_KNOWN_EXCLUDES
) -> None:
    """Turn off gogo's GoString and enum String generation in every file.

    Files that set either option explicitly keep their setting.
    """
    excluded = set(excludes)
    for file in request.proto_file:
        if file.name in excluded:
            continue
        GOPROTO_STRINGER_ALL.set_default(file.options, False)
        GOPROTO_ENUM_STRINGER_ALL.set_default(file.options, False)


class EnumFilterPlugin:
    """Runs baseline generation, then augmented generation for marked files.

    Example:
        plugin = EnumFilterPlugin(
            base=PluginProcess("protoc-gen-gogo"),
            augment=PluginProcess("protoc-gen-dbenum"),
        )
        plugin.run(read_request(sys.stdin.buffer), sys.stdout.buffer)
    """

    def __init__(
        self,
        base: CodeGenerator,
        augment: CodeGenerator,
        *,
        marker: BoolOption = DBENUM,
        primary_suffix: str = PRIMARY_SUFFIX,
        augmented_suffix: str = AUGMENTED_SUFFIX,
        excludes: Iterable[str] = WELL_KNOWN_EXCLUDES,
    ) -> None:
        if primary_suffix == augmented_suffix:
            raise ValueError(
                f"augmented suffix must differ from primary suffix {primary_suffix}"
            )
        self.base = base
        self.augment = augment
        self.marker = marker
        self.primary_suffix = primary_suffix
        self.augmented_suffix = augmented_suffix
        self.excludes = tuple(excludes)
        self.state = PluginState.IDLE
        self.baseline_names: set[str] = set()

    def run(
        self, request: CodeGeneratorRequest, out: BinaryIO
    ) -> list[CodeGeneratorResponse]:
        """Run both passes, writing each response to out as soon as it exists.

        Returns:
            The responses written, baseline first.

        Raises:
            PluginError: If a generator reports an error, or augmented output
                would replace a baseline file.
            GeneratorFailedError: If a generator process fails.
        """
        if self.state is not PluginState.IDLE:
            raise PluginError(f"plugin already ran (state {self.state.value})")

        base_files = list(request.file_to_generate)
        working = CodeGeneratorRequest()
        working.CopyFrom(request)

        responses = [self._generate_baseline(working, out)]

        restricted = self._filter(working, base_files)
        if not restricted.file_to_generate:
            logger.debug("No files with %s enum values", self.marker.name)
            self.state = PluginState.SKIPPED_NO_MATCHES
            return responses

        responses.append(self._generate_augmented(restricted, out))
        self.state = PluginState.DONE
        return responses

    def _generate_baseline(
        self, request: CodeGeneratorRequest, out: BinaryIO
    ) -> CodeGeneratorResponse:
        turn_off_stringers(request, self.excludes)
        response = self.base.generate(request)
        check_response(response, self.base)
        self.baseline_names = {f.name for f in response.file if f.name}
        write_response(out, response)
        self.state = PluginState.BASELINE_GENERATED
        return response

    def _filter(
        self, request: CodeGeneratorRequest, base_files: list[str]
    ) -> CodeGeneratorRequest:
        self.state = PluginState.FILTERING
        return only_marked_files(request, base_files, self.marker)

    def _generate_augmented(
        self, request: CodeGeneratorRequest, out: BinaryIO
    ) -> CodeGeneratorResponse:
        logger.debug(
            "Generating %s for %s",
            self.augmented_suffix,
            ", ".join(request.file_to_generate),
        )
        response = self.augment.generate(request)
        check_response(response, self.augment)
        rename_outputs(response, self.primary_suffix, self.augmented_suffix)
        clashes = sorted(
            f.name for f in response.file if f.name in self.baseline_names
        )
        if clashes:
            raise PluginError(
                f"augmented output overwrites baseline output: {', '.join(clashes)}"
            )
        write_response(out, response)
        return response


def main(argv: list[str] | None = None) -> int:
    """Entry point for the protoc-gen-enumfilter plugin."""
    from protobuild import get_var

    parser = argparse.ArgumentParser(
        prog="protoc-gen-enumfilter",
        description="protoc plugin adding dbenum output for annotated enums.",
    )
    parser.add_argument(
        "--base",
        default=get_var("PROTOBUILD_ENUMFILTER_BASE", DEFAULT_BASE_PLUGIN),
        help="Plugin for the baseline pass",
    )
    parser.add_argument(
        "--augment",
        default=get_var("PROTOBUILD_ENUMFILTER_AUGMENT", DEFAULT_AUGMENT_PLUGIN),
        help="Plugin for the augmented pass",
    )
    args = parser.parse_args(argv)

    plugin = EnumFilterPlugin(
        base=PluginProcess(args.base), augment=PluginProcess(args.augment)
    )
    out = sys.stdout.buffer
    try:
        plugin.run(read_request(sys.stdin.buffer), out)
    except PluginError as e:
        # protoc reports errors carried in the response
        write_response(out, error_response(str(e)))
    except GeneratorFailedError as e:
        logger.error("%s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
