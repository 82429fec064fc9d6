# SPDX-License-Identifier: MIT
"""Generation context.

The GenerationContext carries the per-target state a compiler needs to
declare output files and run actions: where outputs go, the explicit
environment for tools, and the runner that executes actions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from protobuild.core.action import Action, ActionRunner
from protobuild.core.node import FileNode


@dataclass
class GenerationContext:
    """Context for generating one library.

    Attributes:
        name: Name of the library target. Outputs are declared under a
            directory of this name.
        out_dir: Directory under which this target's outputs live.
        env: Explicit environment for tool invocations.
        runner: Executes actions.
    """

    name: str
    out_dir: Path = field(default_factory=lambda: Path("build"))
    env: dict[str, str] = field(default_factory=dict)
    runner: ActionRunner = field(default_factory=ActionRunner)

    def __post_init__(self) -> None:
        self.out_dir = Path(self.out_dir)

    def declare_file(self, path: str = "", ext: str = "", name: str = "") -> FileNode:
        """Declare an output file.

        The file is placed at ``<out_dir>/<name>/<path><ext>``, where name
        defaults to the target name.
        """
        filename = name or self.name
        if path:
            filename += "/" + path
        if ext:
            filename += ext
        return FileNode(self.out_dir / filename)

    def run(self, action: Action) -> list[FileNode]:
        """Run an action with this context's runner."""
        return self.runner.run(action)
