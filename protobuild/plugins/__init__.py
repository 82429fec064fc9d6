# SPDX-License-Identifier: MIT
"""protoc plugin support."""

from protobuild.plugins.enumfilter import EnumFilterPlugin, PluginState
from protobuild.plugins.generator import CodeGenerator, PluginProcess
from protobuild.plugins.options import BoolOption

__all__ = [
    "BoolOption",
    "CodeGenerator",
    "EnumFilterPlugin",
    "PluginProcess",
    "PluginState",
]
