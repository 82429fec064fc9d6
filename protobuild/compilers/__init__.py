# SPDX-License-Identifier: MIT
"""Proto compilers: output planning and generator invocation."""

from protobuild.compilers.compiler import (
    BaseProtoCompiler,
    CompilerDescriptor,
    CompilerOptions,
    DefaultProtoCompiler,
    MethodsOnlyProtoCompiler,
    ProtoCompiler,
    compile_library,
    library_deps,
    proto_compiler,
)
from protobuild.compilers.invoker import GeneratorInvoker
from protobuild.compilers.planner import PlannedOutputs, plan_outputs
from protobuild.compilers.request import GenerationRequest, GenerationResult

__all__ = [
    "BaseProtoCompiler",
    "CompilerDescriptor",
    "CompilerOptions",
    "DefaultProtoCompiler",
    "GenerationRequest",
    "GenerationResult",
    "GeneratorInvoker",
    "MethodsOnlyProtoCompiler",
    "PlannedOutputs",
    "ProtoCompiler",
    "compile_library",
    "library_deps",
    "plan_outputs",
    "proto_compiler",
]
