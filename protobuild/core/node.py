# SPDX-License-Identifier: MIT
"""Nodes for the generation graph.

A Node is an entry in the dependency graph handed to us by the build
orchestrator: schema sources, descriptor sets, tool binaries and the
files a generation step declares as its outputs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


class Node:
    """Base class for a Node, an entry in the project dependency graph."""

    explicit_deps: list[Node]
    implicit_deps: list[Node]

    def __init__(self, dependencies: list[Node] | None = None) -> None:
        self.explicit_deps = list(dependencies or [])
        self.implicit_deps = []

    def deps(self) -> list[Node]:
        """All direct dependencies of this node"""
        return self.explicit_deps + self.implicit_deps

    def depends(self, n: Node | list[Node]) -> None:
        """Add one or more dependencies for this node, i.e. node(s) which must be
        up to date before we can build this one."""
        if isinstance(n, Node):
            self.explicit_deps.append(n)
        else:
            self.explicit_deps.extend(n)


class FileNode(Node):
    """A file system node, representing a possible file in the file system.

    Note that FileNode objects may or may not exist in the filesystem at
    the time they are created, for example if the node represents an
    output to be generated.
    """

    path: Path

    def __init__(
        self, path: Path | str, dependencies: list[Node] | None = None
    ) -> None:
        super().__init__(dependencies)
        self.path = Path(path)
        # Filled in by whatever creates this node as an output
        self._build_info: dict[str, Any] | None = None

    @property
    def basename(self) -> str:
        return self.path.name

    @property
    def dirname(self) -> str:
        return self.path.parent.as_posix()

    def exists(self) -> bool:
        return self.path.exists()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.path.as_posix()!r})"


class SchemaFile(FileNode):
    """A schema (.proto) source file.

    Attributes:
        root: The storage root the file lives under. Empty for files
            authored in the source tree, the output root (for example
            ``bazel-out/k8-fastbuild/bin``) for generated files.
        is_source: True if the file was authored rather than generated.

    A SchemaFile is immutable once created. Two SchemaFile objects are
    the same file when both their path and root are equal.
    """

    root: str
    is_source: bool

    def __init__(
        self,
        path: Path | str,
        root: str = "",
        *,
        is_source: bool | None = None,
    ) -> None:
        super().__init__(path)
        self.root = root.rstrip("/")
        self.is_source = (not self.root) if is_source is None else is_source
        self._frozen = True

    def __setattr__(self, name: str, value: Any) -> None:
        if getattr(self, "_frozen", False):
            raise AttributeError(f"SchemaFile is immutable: cannot set {name!r}")
        super().__setattr__(name, value)

    @property
    def posix_path(self) -> str:
        """The file's full path as a forward-slash string."""
        return self.path.as_posix()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SchemaFile):
            return NotImplemented
        return self.posix_path == other.posix_path and self.root == other.root

    def __hash__(self) -> int:
        return hash((self.posix_path, self.root))

    def __repr__(self) -> str:
        return f"SchemaFile({self.posix_path!r}, root={self.root!r})"


@dataclass
class SchemaInfo:
    """Metadata about one schema compilation unit (a proto library).

    Attributes:
        source_root: Directory prefix the unit's import paths are relative
            to, after import-prefix adjustments. "." marks a unit whose
            sources were generated.
        direct_sources: Schema files declared directly by this unit.
        check_deps_sources: Schema files that must be generated for this
            unit. Defaults to direct_sources.
        direct_descriptor_set: The unit's own descriptor set, if any.
        transitive_descriptor_sets: Descriptor sets of this unit and all of
            its dependencies, needed to resolve cross-file types.
    """

    source_root: str = "."
    direct_sources: list[SchemaFile] = field(default_factory=list)
    check_deps_sources: list[SchemaFile] | None = None
    direct_descriptor_set: FileNode | None = None
    transitive_descriptor_sets: list[FileNode] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.check_deps_sources is None:
            self.check_deps_sources = list(self.direct_sources)
        # Own the list; callers often share one across libraries
        self.transitive_descriptor_sets = list(self.transitive_descriptor_sets)
        direct = self.direct_descriptor_set
        if direct is not None and all(
            d.path != direct.path for d in self.transitive_descriptor_sets
        ):
            self.transitive_descriptor_sets.append(direct)

    @property
    def sources_to_check(self) -> list[SchemaFile]:
        return list(self.check_deps_sources or [])
