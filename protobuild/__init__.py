# SPDX-License-Identifier: MIT
"""
Protobuild: generates target-language sources from protocol buffer schemas.

Protobuild plans the output files of a proto library, gives every schema
file a stable import path and runs the external code generator once per
library with a reproducible argument set.
"""

from __future__ import annotations

import json
import os

__version__ = "0.1.0"

# Re-export commonly used classes for convenient imports
from protobuild.compilers.compiler import (  # noqa: E402
    CompilerDescriptor,
    CompilerOptions,
    DefaultProtoCompiler,
    MethodsOnlyProtoCompiler,
    ProtoCompiler,
    compile_library,
    proto_compiler,
)
from protobuild.compilers.request import GenerationRequest  # noqa: E402
from protobuild.configure.config import CompilerConfig, Configure  # noqa: E402
from protobuild.core.context import GenerationContext  # noqa: E402
from protobuild.core.node import SchemaFile, SchemaInfo  # noqa: E402

# Internal storage for build variables
_cli_vars: dict[str, str] | None = None


def get_var(name: str, default: str | None = None) -> str | None:
    """Get a build variable set by the build driver or from environment.

    Drivers pass variables as a JSON object in PROTOBUILD_VARS:
        PROTOBUILD_VARS='{"PROTOBUILD_ENUMFILTER_BASE": "/opt/bin/protoc-gen-gogo"}'

    Precedence (highest to lowest):
        1. PROTOBUILD_VARS
        2. Environment variable of the same name

    Args:
        name: Variable name.
        default: Default value if not set.

    Returns:
        The variable value, or default if not set.
    """
    global _cli_vars

    # Lazy-load vars from environment on first access
    if _cli_vars is None:
        raw = os.environ.get("PROTOBUILD_VARS")
        if raw:
            try:
                _cli_vars = json.loads(raw)
            except json.JSONDecodeError:
                _cli_vars = {}
        else:
            _cli_vars = {}

    if name in _cli_vars:
        return _cli_vars[name]

    return os.environ.get(name, default)


def _reset_vars() -> None:
    """Forget cached build variables (used by tests)."""
    global _cli_vars
    _cli_vars = None


# Public API exports
__all__ = [
    "__version__",
    "get_var",
    "CompilerConfig",
    "CompilerDescriptor",
    "CompilerOptions",
    "Configure",
    "DefaultProtoCompiler",
    "GenerationContext",
    "GenerationRequest",
    "MethodsOnlyProtoCompiler",
    "ProtoCompiler",
    "SchemaFile",
    "SchemaInfo",
    "compile_library",
    "proto_compiler",
]
