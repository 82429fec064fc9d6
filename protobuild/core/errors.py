# SPDX-License-Identifier: MIT
"""Custom exceptions for protobuild.

All protobuild exceptions inherit from ProtobuildError, which includes
optional location information (usually the library or target being
generated) for better error messages.
"""

from __future__ import annotations


class ProtobuildError(Exception):
    """Base class for all protobuild exceptions.

    Attributes:
        message: The error message.
        location: Optional location (e.g. a target name) where the error occurred.
    """

    def __init__(
        self,
        message: str,
        location: str | None = None,
    ) -> None:
        self.message = message
        self.location = location
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.location:
            return f"{self.location}: {self.message}"
        return self.message


class ConfigureError(ProtobuildError):
    """Error in compiler or library configuration.

    Raised when a compiler is misconfigured, a required tool is missing,
    or the set of schema files handed to a generation step is inconsistent.
    """


class GenerateError(ProtobuildError):
    """Error during the generate phase.

    Raised when a generation step cannot be planned or its external
    generator fails.
    """


class ImportPathConflictError(ConfigureError):
    """Two distinct schema files resolve to the same import path.

    Attributes:
        import_path: The shared import path.
        first: Path of the file that claimed the import path first.
        second: Path of the conflicting file.
    """

    def __init__(
        self,
        import_path: str,
        first: str,
        second: str,
        location: str | None = None,
    ) -> None:
        self.import_path = import_path
        self.first = first
        self.second = second
        super().__init__(
            f"proto files {second} and {first} have the same import path, "
            f"{import_path}",
            location,
        )


class OutputConflictError(ConfigureError):
    """Two distinct schema files would generate the same output file.

    Attributes:
        output: Path of the shared output.
        first: Path of the file that declared the output first.
        second: Path of the conflicting file.
    """

    def __init__(
        self,
        output: str,
        first: str,
        second: str,
        location: str | None = None,
    ) -> None:
        self.output = output
        self.first = first
        self.second = second
        super().__init__(
            f"proto files {second} and {first} both generate {output}", location
        )


class ToolNotFoundError(ConfigureError):
    """Required tool was not found.

    Attributes:
        tool: The name of the tool that was not found.
    """

    def __init__(
        self,
        tool: str,
        location: str | None = None,
    ) -> None:
        self.tool = tool
        super().__init__(f"tool not found: {tool}", location)


class MissingSourceError(ProtobuildError):
    """Declared input file does not exist.

    Attributes:
        path: The path to the missing file.
    """

    def __init__(
        self,
        path: str,
        location: str | None = None,
    ) -> None:
        self.path = path
        super().__init__(f"source file not found: {path}", location)


class GeneratorFailedError(GenerateError):
    """The external generator exited with a non-zero status.

    The generator's diagnostic output is kept verbatim so callers can
    surface it unchanged.

    Attributes:
        command: The command that was run.
        returncode: The process exit status.
        stderr: The raw diagnostic output of the process.
    """

    def __init__(
        self,
        command: list[str],
        returncode: int,
        stderr: str,
        location: str | None = None,
    ) -> None:
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        message = f"{command[0]} failed with exit status {returncode}"
        if stderr:
            message = f"{message}:\n{stderr}"
        super().__init__(message, location)


class MissingOutputsError(GenerateError):
    """Declared outputs were not produced by a generation step.

    Attributes:
        missing: Paths of the declared outputs that do not exist.
    """

    def __init__(
        self,
        missing: list[str],
        location: str | None = None,
    ) -> None:
        self.missing = missing
        listing = "\n  ".join(missing)
        super().__init__(f"declared outputs were not created:\n  {listing}", location)


class PluginError(ProtobuildError):
    """A protoc plugin pass reported an error."""
