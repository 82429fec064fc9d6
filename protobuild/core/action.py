# SPDX-License-Identifier: MIT
"""Actions: single external-process invocations with declared files.

An Action records everything needed to run one tool: the executable, its
arguments, the files it reads and the files it must produce. The
ActionRunner executes actions synchronously. It checks declared inputs
before running and declared outputs after, so a step either produces its
full output set or fails.
"""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

from protobuild.core.args import Args
from protobuild.core.errors import (
    GeneratorFailedError,
    MissingOutputsError,
    MissingSourceError,
)
from protobuild.core.node import FileNode

logger = logging.getLogger(__name__)


@dataclass
class Action:
    """One external tool invocation.

    Attributes:
        mnemonic: Short action kind, used in logs and param file names.
        executable: The program to run.
        arguments: Arguments for the program.
        inputs: Files the program reads. Must exist before it runs.
        outputs: Files the program must create.
        env: Explicit environment for the process.
        use_default_shell_env: If True, the inherited shell environment is
            forwarded, overlaid with env.
        progress_message: Human-readable description of the action.
    """

    mnemonic: str
    executable: FileNode
    arguments: Args
    inputs: list[FileNode] = field(default_factory=list)
    outputs: list[FileNode] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)
    use_default_shell_env: bool = False
    progress_message: str = ""

    def __post_init__(self) -> None:
        # Outputs depend on the sources read; the tool itself is implicit
        sources = [n for n in self.inputs if n.path != self.executable.path]
        for out in self.outputs:
            out._build_info = {"mnemonic": self.mnemonic, "action": self}
            out.depends(sources)
            out.implicit_deps.append(self.executable)


class ActionRunner:
    """Runs actions as subprocesses.

    Example:
        runner = ActionRunner(param_dir=Path("build/params"))
        runner.run(action)
    """

    def __init__(
        self,
        *,
        param_dir: Path | str = "build/params",
        check_inputs: bool = True,
        dry_run: bool = False,
    ) -> None:
        """Create an action runner.

        Args:
            param_dir: Directory for parameter files.
            check_inputs: If True, fail before running when an input is missing.
            dry_run: If True, log and record actions without running them.
        """
        self.param_dir = Path(param_dir)
        self.check_inputs = check_inputs
        self.dry_run = dry_run
        self.executed: list[Action] = []
        self._counter = 0

    def environment(self, action: Action) -> dict[str, str]:
        """Compute the process environment for an action."""
        if action.use_default_shell_env:
            env = dict(os.environ)
            env.update(action.env)
            return env
        return dict(action.env)

    def command_line(self, action: Action) -> list[str]:
        """Return the full command line, writing a param file if requested."""
        self._counter += 1
        param_file = self.param_dir / f"{action.mnemonic}-{self._counter}.params"
        return [
            action.executable.path.as_posix(),
            *action.arguments.render(param_file),
        ]

    def run(self, action: Action) -> list[FileNode]:
        """Run an action to completion.

        Returns:
            The action's declared outputs.

        Raises:
            MissingSourceError: If a declared input does not exist.
            GeneratorFailedError: If the process exits with non-zero status
                or cannot be started.
            MissingOutputsError: If a declared output was not created.
        """
        if self.check_inputs and not self.dry_run:
            for node in action.inputs:
                if not node.exists():
                    raise MissingSourceError(node.path.as_posix(), action.mnemonic)

        cmd = self.command_line(action)
        if action.progress_message:
            logger.info("%s", action.progress_message)
        logger.debug("Running: %s", " ".join(cmd))
        logger.debug("  use_default_shell_env=%s", action.use_default_shell_env)
        self.executed.append(action)
        if self.dry_run:
            return list(action.outputs)

        for out in action.outputs:
            out.path.parent.mkdir(parents=True, exist_ok=True)

        try:
            result = subprocess.run(
                cmd,
                env=self.environment(action),
                capture_output=True,
                text=True,
            )
        except OSError as e:
            raise GeneratorFailedError(cmd, -1, str(e), action.mnemonic) from e

        if result.stdout:
            logger.debug("%s", result.stdout.rstrip())
        if result.returncode != 0:
            raise GeneratorFailedError(
                cmd, result.returncode, result.stderr, action.mnemonic
            )

        missing = [out.path.as_posix() for out in action.outputs if not out.exists()]
        if missing:
            raise MissingOutputsError(missing, action.mnemonic)
        return list(action.outputs)
