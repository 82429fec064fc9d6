# SPDX-License-Identifier: MIT
"""Tests for protobuild.plugins.enumfilter."""

import io
import sys
from unittest.mock import patch

import pytest
from google.protobuf import descriptor_pb2

from protobuild.core.errors import GeneratorFailedError, PluginError
from protobuild.plugins import enumfilter
from protobuild.plugins.enumfilter import (
    DBENUM,
    GOPROTO_ENUM_STRINGER_ALL,
    GOPROTO_STRINGER_ALL,
    EnumFilterPlugin,
    PluginState,
    marked_files,
    only_marked_files,
    turn_off_stringers,
)
from protobuild.plugins.generator import CodeGeneratorRequest, CodeGeneratorResponse


class FakeGenerator:
    """Emits one .pb.go file per file to generate and records its requests."""

    def __init__(self, error: str | None = None):
        self.requests: list[CodeGeneratorRequest] = []
        self.error = error

    def generate(self, request):
        copy = CodeGeneratorRequest()
        copy.CopyFrom(request)
        self.requests.append(copy)
        response = CodeGeneratorResponse()
        if self.error:
            response.error = self.error
            return response
        for name in request.file_to_generate:
            response.file.add(
                name=name.removesuffix(".proto") + ".pb.go", content="package x\n"
            )
        return response


def make_file(name: str, marked: bool = False, nested: bool = False):
    file = descriptor_pb2.FileDescriptorProto(name=name, package="test")
    enum = file.enum_type.add(name="Color")
    value = enum.value.add(name="RED", number=0)
    if nested:
        msg = file.message_type.add(name="Holder")
        inner = msg.enum_type.add(name="Inner")
        value = inner.value.add(name="X", number=0)
    if marked:
        DBENUM.set(value.options, True)
    return file


def make_request(*files, generate=None) -> CodeGeneratorRequest:
    request = CodeGeneratorRequest()
    for file in files:
        request.proto_file.add().CopyFrom(file)
    names = generate if generate is not None else [f.name for f in files]
    request.file_to_generate.extend(names)
    return request


def names(response: CodeGeneratorResponse) -> list[str]:
    return [f.name for f in response.file]


class TestMarkedFiles:
    def test_marked(self):
        request = make_request(
            make_file("a.proto", marked=True),
            make_file("b.proto"),
            make_file("c.proto", marked=True),
        )
        assert marked_files(request) == {"a.proto", "c.proto"}

    def test_marker_false_does_not_count(self):
        file = make_file("a.proto")
        DBENUM.set(file.enum_type[0].value[0].options, False)
        assert marked_files(make_request(file)) == set()

    def test_nested_enums_are_not_scanned(self):
        request = make_request(make_file("a.proto", marked=True, nested=True))
        assert marked_files(request) == set()

    def test_only_marked_files_keeps_order(self):
        request = make_request(
            make_file("c.proto", marked=True),
            make_file("b.proto"),
            make_file("a.proto", marked=True),
        )
        restricted = only_marked_files(request, ["c.proto", "b.proto", "a.proto"])

        assert list(restricted.file_to_generate) == ["c.proto", "a.proto"]
        assert list(request.file_to_generate) == ["c.proto", "b.proto", "a.proto"]
        assert len(restricted.proto_file) == 3

    def test_dependencies_are_not_generated(self):
        """A marked file that is only a dependency stays out of the second pass."""
        request = make_request(
            make_file("dep.proto", marked=True),
            make_file("a.proto"),
            generate=["a.proto"],
        )
        assert list(only_marked_files(request, ["a.proto"]).file_to_generate) == []


class TestTurnOffStringers:
    def test_sets_both_options(self):
        request = make_request(make_file("a.proto"))
        turn_off_stringers(request)
        options = request.proto_file[0].options
        assert GOPROTO_STRINGER_ALL.get(options) is False
        assert GOPROTO_ENUM_STRINGER_ALL.get(options) is False

    def test_explicit_setting_wins(self):
        file = make_file("a.proto")
        GOPROTO_ENUM_STRINGER_ALL.set(file.options, True)
        request = make_request(file)

        turn_off_stringers(request)

        options = request.proto_file[0].options
        assert GOPROTO_ENUM_STRINGER_ALL.get(options) is True
        assert GOPROTO_STRINGER_ALL.get(options) is False

    def test_descriptor_proto_excluded(self):
        request = make_request(
            make_file("google/protobuf/descriptor.proto"),
            make_file("a.proto"),
            generate=["a.proto"],
        )
        turn_off_stringers(request)
        assert not GOPROTO_STRINGER_ALL.is_set(request.proto_file[0].options)
        assert GOPROTO_STRINGER_ALL.is_set(request.proto_file[1].options)


class TestEnumFilterPlugin:
    def test_two_passes(self):
        """A and C are marked, B is not: B gets only baseline output."""
        base, augment = FakeGenerator(), FakeGenerator()
        plugin = EnumFilterPlugin(base, augment)
        request = make_request(
            make_file("a.proto", marked=True),
            make_file("b.proto"),
            make_file("c.proto", marked=True),
        )
        out = io.BytesIO()

        responses = plugin.run(request, out)

        assert [names(r) for r in responses] == [
            ["a.pb.go", "b.pb.go", "c.pb.go"],
            ["a_dbenum.pb.go", "c_dbenum.pb.go"],
        ]
        assert list(augment.requests[0].file_to_generate) == ["a.proto", "c.proto"]
        assert plugin.state is PluginState.DONE

        merged = CodeGeneratorResponse.FromString(out.getvalue())
        assert names(merged) == [
            "a.pb.go",
            "b.pb.go",
            "c.pb.go",
            "a_dbenum.pb.go",
            "c_dbenum.pb.go",
        ]

    def test_no_matches_skips_second_pass(self):
        base, augment = FakeGenerator(), FakeGenerator()
        plugin = EnumFilterPlugin(base, augment)
        request = make_request(make_file("a.proto"), make_file("b.proto"))
        out = io.BytesIO()

        responses = plugin.run(request, out)

        assert len(responses) == 1
        assert augment.requests == []
        assert plugin.state is PluginState.SKIPPED_NO_MATCHES
        assert out.getvalue() == responses[0].SerializeToString()

    def test_baseline_sees_options_off(self):
        base = FakeGenerator()
        plugin = EnumFilterPlugin(base, FakeGenerator())
        request = make_request(make_file("a.proto"))

        plugin.run(request, io.BytesIO())

        sent = base.requests[0].proto_file[0].options
        assert GOPROTO_STRINGER_ALL.get(sent) is False
        assert not GOPROTO_STRINGER_ALL.is_set(request.proto_file[0].options)

    def test_augment_sees_modified_options(self):
        augment = FakeGenerator()
        plugin = EnumFilterPlugin(FakeGenerator(), augment)
        plugin.run(make_request(make_file("a.proto", marked=True)), io.BytesIO())
        sent = augment.requests[0].proto_file[0].options
        assert GOPROTO_ENUM_STRINGER_ALL.get(sent) is False

    def test_baseline_error(self):
        plugin = EnumFilterPlugin(FakeGenerator(error="bad input"), FakeGenerator())
        out = io.BytesIO()
        with pytest.raises(PluginError, match="bad input"):
            plugin.run(make_request(make_file("a.proto", marked=True)), out)
        assert out.getvalue() == b""
        assert plugin.state is PluginState.IDLE

    def test_augment_error_after_baseline(self):
        plugin = EnumFilterPlugin(FakeGenerator(), FakeGenerator(error="bad enum"))
        out = io.BytesIO()
        with pytest.raises(PluginError, match="bad enum"):
            plugin.run(make_request(make_file("a.proto", marked=True)), out)
        assert names(CodeGeneratorResponse.FromString(out.getvalue())) == ["a.pb.go"]

    def test_runs_once(self):
        plugin = EnumFilterPlugin(FakeGenerator(), FakeGenerator())
        request = make_request(make_file("a.proto"))
        plugin.run(request, io.BytesIO())
        with pytest.raises(PluginError, match="already ran"):
            plugin.run(request, io.BytesIO())

    def test_custom_suffix(self):
        plugin = EnumFilterPlugin(
            FakeGenerator(), FakeGenerator(), augmented_suffix=".enum.go"
        )
        responses = plugin.run(
            make_request(make_file("a.proto", marked=True)), io.BytesIO()
        )
        assert names(responses[1]) == ["a.enum.go"]

    def test_augmented_name_clash(self):
        """Files outside the primary suffix keep their name and may collide."""

        class WithDoc(FakeGenerator):
            def generate(self, request):
                response = super().generate(request)
                response.file.add(name="doc.txt", content="docs\n")
                return response

        plugin = EnumFilterPlugin(WithDoc(), WithDoc())
        out = io.BytesIO()
        with pytest.raises(PluginError, match="overwrites baseline output: doc.txt"):
            plugin.run(make_request(make_file("a.proto", marked=True)), out)
        assert names(CodeGeneratorResponse.FromString(out.getvalue())) == [
            "a.pb.go",
            "doc.txt",
        ]

    def test_insertion_points_do_not_clash(self):
        class WithInsertion(FakeGenerator):
            def generate(self, request):
                response = super().generate(request)
                response.file.add(insertion_point="imports", content="import x\n")
                return response

        plugin = EnumFilterPlugin(WithInsertion(), WithInsertion())
        responses = plugin.run(
            make_request(make_file("a.proto", marked=True)), io.BytesIO()
        )
        assert names(responses[1]) == ["a_dbenum.pb.go", ""]

    def test_suffixes_must_differ(self):
        with pytest.raises(ValueError, match="must differ"):
            EnumFilterPlugin(
                FakeGenerator(), FakeGenerator(), augmented_suffix=".pb.go"
            )


class FakeStdio:
    def __init__(self, data: bytes = b""):
        self.buffer = io.BytesIO(data)


class TestMain:
    def run_main(self, request, argv=None):
        stdin = FakeStdio(request.SerializeToString())
        stdout = FakeStdio()
        with patch.object(sys, "stdin", stdin), patch.object(sys, "stdout", stdout):
            code = enumfilter.main(argv or [])
        return code, stdout.buffer.getvalue()

    def test_uses_plugin_processes(self):
        base, augment = FakeGenerator(), FakeGenerator()
        processes = {"gogo": base, "dbenum": augment}
        request = make_request(make_file("a.proto", marked=True))

        with patch.object(
            enumfilter, "PluginProcess", side_effect=lambda exe: processes[exe]
        ):
            code, output = self.run_main(
                request, ["--base", "gogo", "--augment", "dbenum"]
            )

        assert code == 0
        response = CodeGeneratorResponse.FromString(output)
        assert names(response) == ["a.pb.go", "a_dbenum.pb.go"]

    def test_plugin_error_becomes_error_response(self):
        failing = FakeGenerator(error="bad input")
        with patch.object(enumfilter, "PluginProcess", return_value=failing):
            code, output = self.run_main(make_request(make_file("a.proto")))

        assert code == 0
        assert "bad input" in CodeGeneratorResponse.FromString(output).error

    def test_process_failure(self):
        class Crashing:
            def generate(self, request):
                raise GeneratorFailedError(["protoc-gen-gogo"], 2, "panic")

        with patch.object(enumfilter, "PluginProcess", return_value=Crashing()):
            code, _ = self.run_main(make_request(make_file("a.proto")))
        assert code == 1

    def test_defaults_from_vars(self, monkeypatch):
        import protobuild

        monkeypatch.setenv("PROTOBUILD_ENUMFILTER_BASE", "/opt/protoc-gen-gogofast")
        protobuild._reset_vars()
        seen = []

        def factory(exe):
            seen.append(exe)
            return FakeGenerator()

        with patch.object(enumfilter, "PluginProcess", side_effect=factory):
            self.run_main(make_request(make_file("a.proto")))
        protobuild._reset_vars()

        assert seen == ["/opt/protoc-gen-gogofast", "protoc-gen-dbenum"]
