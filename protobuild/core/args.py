# SPDX-License-Identifier: MIT
"""Argument lists for external tool invocations.

Args accumulates a command line in order, expanding file nodes to their
paths. When a parameter file is requested, the arguments are written to a
file (one argument per line) and the command line carries only a single
flag naming that file. This keeps long generation batches clear of
platform command-line length limits.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from pathlib import Path

from protobuild.core.node import FileNode

ArgValue = str | Path | FileNode


def _expand(value: ArgValue) -> str:
    if isinstance(value, FileNode):
        return value.path.as_posix()
    if isinstance(value, Path):
        return value.as_posix()
    return str(value)


class Args:
    """An ordered argument list with optional parameter-file indirection.

    Example:
        args = Args()
        args.add("-importpath", "example.com/pkg")
        args.add_all(["a.proto", "b.proto"], before_each="-file")
        args.use_param_file("-param=%s")
        command_line = args.render(Path("build/params/gen.params"))
        # -> ["-param=build/params/gen.params"]
    """

    def __init__(self) -> None:
        self._args: list[str] = []
        self._param_file_format: str | None = None

    def add(self, arg: ArgValue, value: ArgValue | None = None) -> Args:
        """Add a single argument, or a flag followed by its value."""
        self._args.append(_expand(arg))
        if value is not None:
            self._args.append(_expand(value))
        return self

    def add_all(
        self,
        values: Iterable[ArgValue],
        *,
        before_each: str | None = None,
        format_each: str | None = None,
    ) -> Args:
        """Add every value in order.

        Args:
            values: Values to add.
            before_each: Flag inserted before each value.
            format_each: %-style format applied to each value.
        """
        for value in values:
            text = _expand(value)
            if format_each is not None:
                text = format_each % text
            if before_each is not None:
                self._args.append(before_each)
            self._args.append(text)
        return self

    def use_param_file(self, param_file_format: str) -> Args:
        """Write arguments to a parameter file when rendered.

        Args:
            param_file_format: %-style format producing the single flag that
                names the parameter file, e.g. "-param=%s".
        """
        if "%s" not in param_file_format:
            raise ValueError(
                f"param file format must contain %s, got {param_file_format!r}"
            )
        self._param_file_format = param_file_format
        return self

    @property
    def param_file_format(self) -> str | None:
        return self._param_file_format

    def to_list(self) -> list[str]:
        """Return the full argument list, without parameter-file indirection."""
        return list(self._args)

    def render(self, param_file: Path) -> list[str]:
        """Return the arguments to put on the command line.

        If a parameter file format was set, the arguments are written to
        param_file and a single flag naming it is returned. Otherwise the
        arguments are returned as-is and no file is written.
        """
        if self._param_file_format is None:
            return self.to_list()
        write_param_file(param_file, self._args)
        return [self._param_file_format % param_file.as_posix()]

    def __iter__(self) -> Iterator[str]:
        return iter(self._args)

    def __len__(self) -> int:
        return len(self._args)

    def __repr__(self) -> str:
        return f"Args({self._args!r})"


def write_param_file(path: Path, args: Iterable[str]) -> None:
    """Write args to path, one per line."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        for arg in args:
            if "\n" in arg:
                raise ValueError(f"argument contains a newline: {arg!r}")
            f.write(arg)
            f.write("\n")


def read_param_file(path: Path | str) -> list[str]:
    """Read arguments written by write_param_file."""
    with open(path, encoding="utf-8") as f:
        return [line.rstrip("\r\n") for line in f]
