# SPDX-License-Identifier: MIT
"""Tests for protobuild.plugins.options."""

import pytest
from google.protobuf import descriptor_pb2

from protobuild.plugins.options import BoolOption

FLAG = BoolOption("test.flag", 65001)
OTHER = BoolOption("test.other", 65002)


class TestBoolOption:
    def test_unset(self):
        options = descriptor_pb2.FileOptions()
        assert FLAG.get(options) is None
        assert not FLAG.is_set(options)

    def test_set_and_get(self):
        options = descriptor_pb2.EnumValueOptions()
        FLAG.set(options, True)
        assert FLAG.get(options) is True
        assert OTHER.get(options) is None

    def test_explicit_false_is_set(self):
        options = descriptor_pb2.FileOptions()
        FLAG.set(options, False)
        assert FLAG.get(options) is False
        assert FLAG.is_set(options)

    def test_set_replaces(self):
        options = descriptor_pb2.FileOptions()
        FLAG.set(options, True)
        FLAG.set(options, False)
        assert FLAG.get(options) is False

    def test_set_default(self):
        options = descriptor_pb2.FileOptions()
        assert FLAG.set_default(options, False) is True
        assert FLAG.get(options) is False

    def test_set_default_keeps_explicit_value(self):
        options = descriptor_pb2.FileOptions()
        FLAG.set(options, True)
        assert FLAG.set_default(options, False) is False
        assert FLAG.get(options) is True

    def test_known_fields_untouched(self):
        options = descriptor_pb2.FileOptions(go_package="example.com/pkg")
        FLAG.set(options, True)
        assert options.go_package == "example.com/pkg"

    def test_survives_serialization(self):
        options = descriptor_pb2.EnumValueOptions()
        FLAG.set(options, True)
        copy = descriptor_pb2.EnumValueOptions.FromString(options.SerializeToString())
        assert FLAG.get(copy) is True

    def test_invalid_number(self):
        with pytest.raises(ValueError, match="invalid field number"):
            BoolOption("bad", 0)

    def test_repr(self):
        assert repr(FLAG) == "BoolOption('test.flag', 65001)"
