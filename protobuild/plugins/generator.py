# SPDX-License-Identifier: MIT
"""Code generator protocol for protoc plugins.

A protoc plugin reads a CodeGeneratorRequest on stdin and writes a
CodeGeneratorResponse on stdout. CodeGenerator is the in-process view of
that contract; PluginProcess adapts an external plugin binary to it.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import BinaryIO, Protocol, runtime_checkable

from google.protobuf.compiler import plugin_pb2
from google.protobuf.message import DecodeError

from protobuild.core.errors import GeneratorFailedError, PluginError

logger = logging.getLogger(__name__)

CodeGeneratorRequest = plugin_pb2.CodeGeneratorRequest
CodeGeneratorResponse = plugin_pb2.CodeGeneratorResponse


@runtime_checkable
class CodeGenerator(Protocol):
    """Protocol for code generators."""

    def generate(self, request: CodeGeneratorRequest) -> CodeGeneratorResponse:
        """Generate files for request.file_to_generate."""
        ...


class PluginProcess:
    """Runs an external protoc plugin binary as a CodeGenerator.

    Attributes:
        executable: The plugin binary.
        parameter: If set, replaces the request's parameter string.
    """

    def __init__(self, executable: Path | str, parameter: str | None = None) -> None:
        self.executable = Path(executable)
        self.parameter = parameter

    def generate(self, request: CodeGeneratorRequest) -> CodeGeneratorResponse:
        if self.parameter is not None:
            copy = CodeGeneratorRequest()
            copy.CopyFrom(request)
            copy.parameter = self.parameter
            request = copy

        cmd = [str(self.executable)]
        logger.debug(
            "Running plugin %s for %s",
            self.executable,
            ", ".join(request.file_to_generate),
        )
        try:
            result = subprocess.run(
                cmd, input=request.SerializeToString(), capture_output=True
            )
        except OSError as e:
            raise GeneratorFailedError(cmd, -1, str(e)) from e
        stderr = result.stderr.decode("utf-8", errors="replace")
        if result.returncode != 0:
            raise GeneratorFailedError(cmd, result.returncode, stderr)
        if stderr:
            logger.warning("%s: %s", self.executable.name, stderr.rstrip())

        try:
            return CodeGeneratorResponse.FromString(result.stdout)
        except DecodeError as e:
            raise PluginError(
                f"{self.executable} wrote an invalid CodeGeneratorResponse: {e}"
            ) from e

    def __repr__(self) -> str:
        return f"PluginProcess({str(self.executable)!r})"


def read_request(stream: BinaryIO) -> CodeGeneratorRequest:
    """Read a CodeGeneratorRequest from a binary stream."""
    data = stream.read()
    try:
        return CodeGeneratorRequest.FromString(data)
    except DecodeError as e:
        raise PluginError(f"invalid CodeGeneratorRequest: {e}") from e


def write_response(stream: BinaryIO, response: CodeGeneratorResponse) -> None:
    """Write a CodeGeneratorResponse to a binary stream.

    Several responses written to the same stream are read back by protoc
    as a single response with all of their files.
    """
    stream.write(response.SerializeToString())
    stream.flush()


def error_response(message: str) -> CodeGeneratorResponse:
    """A response reporting a generation error to protoc."""
    return CodeGeneratorResponse(error=message)


def check_response(response: CodeGeneratorResponse, generator: object) -> None:
    """Raise PluginError if response reports an error."""
    if response.HasField("error"):
        raise PluginError(f"{generator!r}: {response.error}")


def rename_outputs(
    response: CodeGeneratorResponse, old_suffix: str, new_suffix: str
) -> CodeGeneratorResponse:
    """Replace old_suffix with new_suffix in every output file name.

    Names without old_suffix are kept. Insertion-point entries have an
    empty name and continue the file before them, so they are kept too.
    """
    for f in response.file:
        if f.name.endswith(old_suffix):
            f.name = f.name[: -len(old_suffix)] + new_suffix
    return response
