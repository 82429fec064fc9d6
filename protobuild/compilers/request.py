# SPDX-License-Identifier: MIT
"""Generation requests and results."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from protobuild.core.node import FileNode, SchemaInfo

if TYPE_CHECKING:
    from protobuild.core.action import Action


@dataclass
class GenerationRequest:
    """Everything needed to generate one library from schema files.

    Attributes:
        infos: Schema libraries to generate, in order.
        importpath: Import path of the library being generated. Also the
            directory prefix of every output file.
        imports: Mappings from proto import paths to target-language import
            paths, as "path/to/file.proto=example.com/go/pkg" strings.
    """

    infos: list[SchemaInfo]
    importpath: str
    imports: list[str] = field(default_factory=list)

    def descriptor_sets(self) -> list[FileNode]:
        """Transitive descriptor sets of all infos, first-seen order."""
        seen: set[str] = set()
        result: list[FileNode] = []
        for info in self.infos:
            for desc in info.transitive_descriptor_sets:
                key = desc.path.as_posix()
                if key in seen:
                    continue
                seen.add(key)
                result.append(desc)
        return result


@dataclass
class GenerationResult:
    """Output of a generation step.

    Attributes:
        outputs: Generated source files, in declaration order.
        action: The action that produced them.
    """

    outputs: list[FileNode]
    action: Action | None = None

    @property
    def paths(self) -> list[str]:
        return [out.path.as_posix() for out in self.outputs]
