# SPDX-License-Identifier: MIT
"""Invocation of the external generator.

The invoker turns planned outputs into a single batched action running
the generator wrapper. The wrapper receives, through a parameter file:

    -protoc <protoc> -importpath <importpath> -out_path <dir>
    -plugin <plugin> [-option <opt>]... [-descriptor_set <file>]...
    [-expected <file>]... [-import <proto=go>]... <import paths>...

The trailing import paths name the files in the descriptor sets that
should be generated; everything else in the sets is a dependency only.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from protobuild.compilers.request import GenerationResult
from protobuild.core.action import Action
from protobuild.core.args import Args

if TYPE_CHECKING:
    from protobuild.compilers.compiler import CompilerDescriptor
    from protobuild.compilers.planner import PlannedOutputs
    from protobuild.compilers.request import GenerationRequest
    from protobuild.core.context import GenerationContext

logger = logging.getLogger(__name__)

PARAM_FILE_FORMAT = "-param=%s"
MNEMONIC = "ProtoGen"


class GeneratorInvoker:
    """Builds and runs the generator action for a planned request."""

    def build_args(
        self,
        descriptor: CompilerDescriptor,
        request: GenerationRequest,
        planned: PlannedOutputs,
    ) -> Args:
        """Assemble the generator wrapper's arguments."""
        importpath = request.importpath
        args = Args()
        args.add("-protoc", descriptor.protoc)
        args.add("-importpath", importpath)
        args.add("-out_path", planned.out_path)
        args.add("-plugin", descriptor.plugin)
        args.add_all(descriptor.options, before_each="-option")
        if descriptor.import_path_option:
            args.add_all(
                [importpath], before_each="-option", format_each="import_path=%s"
            )
        args.add_all(planned.descriptor_sets, before_each="-descriptor_set")
        args.add_all(planned.outputs, before_each="-expected")
        args.add_all(request.imports, before_each="-import")
        args.add_all(planned.proto_paths.keys())
        args.use_param_file(PARAM_FILE_FORMAT)
        return args

    def build_action(
        self,
        context: GenerationContext,
        descriptor: CompilerDescriptor,
        request: GenerationRequest,
        planned: PlannedOutputs,
    ) -> Action:
        """Create the generator action without running it."""
        return Action(
            mnemonic=MNEMONIC,
            executable=descriptor.go_protoc,
            arguments=self.build_args(descriptor, request, planned),
            inputs=[
                descriptor.go_protoc,
                descriptor.protoc,
                descriptor.plugin,
                *planned.descriptor_sets,
            ],
            outputs=list(planned.outputs),
            env=dict(context.env),
            # without an explicit PATH, protoc inherits the shell's
            use_default_shell_env="PATH" not in context.env,
            progress_message=f"Generating into {planned.outputs[0].dirname}",
        )

    def invoke(
        self,
        context: GenerationContext,
        descriptor: CompilerDescriptor,
        request: GenerationRequest,
        planned: PlannedOutputs,
    ) -> GenerationResult:
        """Run the generator once for the whole request.

        Raises:
            GeneratorFailedError: If the generator exits with non-zero status.
            MissingOutputsError: If an expected output was not produced.
        """
        action = self.build_action(context, descriptor, request, planned)
        logger.debug(
            "%s: %d import paths, %d outputs",
            context.name,
            len(planned.proto_paths),
            len(planned.outputs),
        )
        outputs = context.run(action)
        return GenerationResult(outputs=outputs, action=action)
