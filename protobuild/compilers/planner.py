# SPDX-License-Identifier: MIT
"""Output planning for a generation step.

The planner assigns every schema file in a request a unique import path,
declares the generated files for it and works out the common output root
the external generator writes into.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from protobuild.core.errors import (
    GenerateError,
    ImportPathConflictError,
    OutputConflictError,
)
from protobuild.core.node import FileNode, SchemaFile
from protobuild.core.paths import proto_path

if TYPE_CHECKING:
    from protobuild.compilers.compiler import CompilerDescriptor
    from protobuild.compilers.request import GenerationRequest
    from protobuild.core.context import GenerationContext

logger = logging.getLogger(__name__)

PROTO_EXTENSION = ".proto"


@dataclass
class PlannedOutputs:
    """Declared outputs of a generation step.

    Attributes:
        outputs: Declared output files, in order of first observation.
        out_path: Directory the generator writes into. Each output lives at
            ``<out_path>/<importpath>/<name>``.
        proto_paths: Claimed import paths mapped to the file that claimed
            them, in order of first observation.
        descriptor_sets: Transitive descriptor sets for the whole request.
    """

    outputs: list[FileNode] = field(default_factory=list)
    out_path: str = ""
    proto_paths: dict[str, SchemaFile] = field(default_factory=dict)
    descriptor_sets: list[FileNode] = field(default_factory=list)


def output_stem(src: SchemaFile) -> str:
    """The output name of a schema file before any suffix is added."""
    return src.basename.removesuffix(PROTO_EXTENSION)


def output_root(output: FileNode, importpath: str) -> str:
    """Directory of output with the trailing importpath removed."""
    dirname = output.dirname
    if not importpath:
        return dirname
    if dirname == importpath:
        return ""
    if dirname.endswith("/" + importpath):
        return dirname[: -len(importpath) - 1]
    return dirname


def plan_outputs(
    context: GenerationContext,
    descriptor: CompilerDescriptor,
    request: GenerationRequest,
) -> PlannedOutputs:
    """Declare the outputs of generating request with descriptor.

    Every source reachable through each library's check_deps_sources gets
    an import path. A file observed more than once is planned once. One
    output is declared per configured suffix.

    Args:
        context: Context used to declare output files.
        descriptor: The compiler configuration.
        request: The schema libraries to generate.

    Returns:
        The planned outputs.

    Raises:
        ImportPathConflictError: If two different files share an import path.
        OutputConflictError: If two different files would generate the same
            output file.
        GenerateError: If the request contains no schema files.
    """
    planned = PlannedOutputs(descriptor_sets=request.descriptor_sets())
    suffixes = descriptor.output_suffixes
    importpath = request.importpath
    declared: dict[str, SchemaFile] = {}

    for info in request.infos:
        for src in info.sources_to_check:
            path = proto_path(src, info)
            claimed = planned.proto_paths.get(path)
            if claimed is not None:
                if claimed != src:
                    raise ImportPathConflictError(
                        path, claimed.posix_path, src.posix_path, context.name
                    )
                continue
            planned.proto_paths[path] = src

            stem = output_stem(src)
            out_name = f"{importpath}/{stem}" if importpath else stem
            for suffix in suffixes:
                out = context.declare_file(path=out_name, ext=suffix)
                key = out.path.as_posix()
                # outputs are named by basename, so nested import paths can clash
                owner = declared.get(key)
                if owner is not None:
                    raise OutputConflictError(
                        key, owner.posix_path, src.posix_path, context.name
                    )
                declared[key] = src
                planned.outputs.append(out)
            logger.debug("%s -> %s", src.posix_path, path)

    if not planned.outputs:
        raise GenerateError(
            f"no proto sources to generate for {importpath}", context.name
        )
    planned.out_path = output_root(planned.outputs[0], importpath)
    return planned
