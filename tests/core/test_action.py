# SPDX-License-Identifier: MIT
"""Tests for protobuild.core.action."""

import subprocess
import sys
from pathlib import Path
from unittest.mock import patch

import pytest

from protobuild.core.action import Action, ActionRunner
from protobuild.core.args import Args
from protobuild.core.errors import (
    GeneratorFailedError,
    MissingOutputsError,
    MissingSourceError,
)
from protobuild.core.node import FileNode


def make_action(tmp_path: Path, outputs=None, inputs=None, **kwargs) -> Action:
    tool = tmp_path / "tool"
    tool.write_text("")
    args = Args().add("-x", "1")
    args.use_param_file("-param=%s")
    return Action(
        mnemonic="Test",
        executable=FileNode(tool),
        arguments=args,
        inputs=inputs if inputs is not None else [FileNode(tool)],
        outputs=outputs or [],
        **kwargs,
    )


def completed(returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess([], returncode, stdout=stdout, stderr=stderr)


class TestEnvironment:
    def test_explicit_env_only(self, tmp_path, monkeypatch):
        monkeypatch.setenv("PROTOBUILD_TEST_VAR", "shell")
        action = make_action(tmp_path, env={"PATH": "/usr/bin"})
        env = ActionRunner().environment(action)
        assert env == {"PATH": "/usr/bin"}

    def test_default_shell_env_is_overlaid(self, tmp_path, monkeypatch):
        monkeypatch.setenv("PROTOBUILD_TEST_VAR", "shell")
        action = make_action(
            tmp_path, env={"GOOS": "linux"}, use_default_shell_env=True
        )
        env = ActionRunner().environment(action)
        assert env["PROTOBUILD_TEST_VAR"] == "shell"
        assert env["GOOS"] == "linux"


class TestActionRunner:
    def test_command_line_uses_param_file(self, tmp_path):
        action = make_action(tmp_path)
        runner = ActionRunner(param_dir=tmp_path / "params")
        cmd = runner.command_line(action)

        assert cmd[0] == (tmp_path / "tool").as_posix()
        assert len(cmd) == 2
        assert cmd[1].startswith("-param=")
        param_file = Path(cmd[1][len("-param=") :])
        assert param_file.read_text() == "-x\n1\n"

    def test_param_files_are_unique(self, tmp_path):
        action = make_action(tmp_path)
        runner = ActionRunner(param_dir=tmp_path)
        assert runner.command_line(action) != runner.command_line(action)

    def test_missing_input(self, tmp_path):
        action = make_action(tmp_path, inputs=[FileNode(tmp_path / "missing.bin")])
        with pytest.raises(MissingSourceError, match="missing.bin"):
            ActionRunner(param_dir=tmp_path).run(action)

    def test_success(self, tmp_path):
        out = FileNode(tmp_path / "out" / "a.pb.go")
        action = make_action(tmp_path, outputs=[out])

        def fake_run(cmd, **kwargs):
            out.path.write_text("package a\n")
            return completed()

        with patch("subprocess.run", side_effect=fake_run) as mock:
            result = ActionRunner(param_dir=tmp_path).run(action)

        assert result == [out]
        assert mock.call_count == 1
        assert mock.call_args.kwargs["env"] == {}

    def test_outputs_record_their_action(self, tmp_path):
        out = FileNode(tmp_path / "a.pb.go")
        action = make_action(tmp_path, outputs=[out])
        assert out._build_info == {"mnemonic": "Test", "action": action}

    def test_outputs_depend_on_inputs(self, tmp_path):
        src = FileNode(tmp_path / "a.proto")
        out = FileNode(tmp_path / "a.pb.go")
        action = make_action(
            tmp_path, outputs=[out], inputs=[FileNode(tmp_path / "tool"), src]
        )
        assert out.explicit_deps == [src]
        assert out.implicit_deps == [action.executable]
        assert out.deps() == [src, action.executable]

    def test_failure_surfaces_stderr_verbatim(self, tmp_path):
        action = make_action(tmp_path)
        stderr = "foo.proto:3:1: Expected top-level statement.\n"
        with patch("subprocess.run", return_value=completed(1, stderr=stderr)):
            with pytest.raises(GeneratorFailedError) as info:
                ActionRunner(param_dir=tmp_path).run(action)

        assert info.value.returncode == 1
        assert info.value.stderr == stderr
        assert stderr in str(info.value)

    def test_missing_outputs(self, tmp_path):
        out = FileNode(tmp_path / "never.pb.go")
        action = make_action(tmp_path, outputs=[out])
        with patch("subprocess.run", return_value=completed()):
            with pytest.raises(MissingOutputsError) as info:
                ActionRunner(param_dir=tmp_path).run(action)
        assert info.value.missing == [out.path.as_posix()]

    def test_cannot_start(self, tmp_path):
        action = make_action(tmp_path)
        with patch("subprocess.run", side_effect=OSError("Permission denied")):
            with pytest.raises(GeneratorFailedError, match="Permission denied"):
                ActionRunner(param_dir=tmp_path).run(action)

    def test_dry_run(self, tmp_path):
        out = FileNode(tmp_path / "a.pb.go")
        action = make_action(
            tmp_path, outputs=[out], inputs=[FileNode(tmp_path / "missing")]
        )
        runner = ActionRunner(param_dir=tmp_path, dry_run=True)
        with patch("subprocess.run") as mock:
            assert runner.run(action) == [out]
        mock.assert_not_called()
        assert runner.executed == [action]

    def test_real_process(self, tmp_path):
        """Runs a real process through a param file."""
        script = tmp_path / "gen.py"
        out = tmp_path / "out.txt"
        script.write_text(
            "import sys\n"
            "params = sys.argv[1].split('=', 1)[1]\n"
            "args = open(params).read().split()\n"
            "open(args[1], 'w').write('ok')\n"
        )
        args = Args().add("-out", out)
        args.use_param_file("-param=%s")
        action = Action(
            mnemonic="Real",
            executable=FileNode(sys.executable),
            arguments=args,
            outputs=[FileNode(out)],
            use_default_shell_env=True,
        )
        # Run "python gen.py -param=..." by putting the script first
        action.arguments = Args().add(script)
        action.arguments.add_all(args.render(tmp_path / "inner.params"))

        ActionRunner(param_dir=tmp_path).run(action)
        assert out.read_text() == "ok"
