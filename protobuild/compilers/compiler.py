# SPDX-License-Identifier: MIT
"""Proto compiler protocol and backends.

A proto compiler knows how to turn a set of schema libraries into
target-language source files. Each compiler is configured once by a
CompilerDescriptor and is then shared by every library that uses it.

Two backends are provided:
- DefaultProtoCompiler generates self-contained sources.
- MethodsOnlyProtoCompiler generates sources that only add methods to
  types produced by another compiler. It is never used on its own.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from protobuild.compilers.invoker import GeneratorInvoker
from protobuild.compilers.planner import plan_outputs
from protobuild.core.errors import ConfigureError
from protobuild.core.node import FileNode

if TYPE_CHECKING:
    from protobuild.compilers.request import GenerationRequest
    from protobuild.configure.config import CompilerConfig
    from protobuild.core.context import GenerationContext

DEFAULT_SUFFIX = ".pb.go"


def _as_node(value: FileNode | Path | str) -> FileNode:
    if isinstance(value, FileNode):
        return value
    return FileNode(value)


@dataclass(frozen=True)
class CompilerDescriptor:
    """Configuration of a proto compiler.

    Attributes:
        name: Name of the compiler.
        plugin: The protoc plugin binary that emits target-language code.
        protoc: The protoc binary.
        go_protoc: The generator wrapper that drives protoc and checks
            its outputs.
        deps: Libraries implicitly added to any library using this compiler
            (typically well-known types and the proto runtime).
        suffix: Output suffix, used when suffixes is empty.
        suffixes: Output suffixes. One output per suffix is declared for
            every schema file.
        options: Options passed to the plugin.
        import_path_option: If True, an "import_path=<importpath>" option is
            passed to the plugin as well.
        valid_archive: False for compilers whose output is not buildable on
            its own (it only adds methods to types produced elsewhere).
    """

    name: str
    plugin: FileNode
    protoc: FileNode
    go_protoc: FileNode
    deps: tuple[str, ...] = ()
    suffix: str = DEFAULT_SUFFIX
    suffixes: tuple[str, ...] = ()
    options: tuple[str, ...] = ()
    import_path_option: bool = False
    valid_archive: bool = True

    def __post_init__(self) -> None:
        # Accept lists and plain paths at construction; store immutable forms
        for attr in ("plugin", "protoc", "go_protoc"):
            object.__setattr__(self, attr, _as_node(getattr(self, attr)))
        for attr in ("deps", "suffixes", "options"):
            object.__setattr__(self, attr, tuple(getattr(self, attr)))
        if not self.output_suffixes or not all(self.output_suffixes):
            raise ConfigureError(f"compiler {self.name} has an empty output suffix")
        if len(set(self.output_suffixes)) != len(self.output_suffixes):
            raise ConfigureError(
                f"compiler {self.name} has duplicate output suffixes: "
                f"{', '.join(self.output_suffixes)}"
            )

    @property
    def output_suffixes(self) -> tuple[str, ...]:
        """The suffixes outputs are declared with."""
        if self.suffixes:
            return self.suffixes
        return (self.suffix,)


@runtime_checkable
class ProtoCompiler(Protocol):
    """Protocol for proto compilers.

    A ProtoCompiler declares output files for a GenerationRequest, runs
    the generator and returns the generated sources.
    """

    @property
    def descriptor(self) -> CompilerDescriptor:
        """The compiler's configuration."""
        ...

    @property
    def deps(self) -> list[str]:
        """Implicit dependencies of libraries using this compiler."""
        ...

    @property
    def valid_archive(self) -> bool:
        """True if the generated sources are buildable on their own."""
        ...

    def compile(
        self, context: GenerationContext, request: GenerationRequest
    ) -> list[FileNode]:
        """Generate sources for request.

        Args:
            context: Per-target generation context.
            request: The schema libraries to generate.

        Returns:
            The generated source files, in declaration order.
        """
        ...


class BaseProtoCompiler(ABC):
    """Abstract base class for proto compilers.

    Subclasses implement _compile() to do the actual generation.
    """

    def __init__(
        self,
        descriptor: CompilerDescriptor,
        invoker: GeneratorInvoker | None = None,
    ) -> None:
        self._descriptor = descriptor
        self._invoker = invoker or GeneratorInvoker()

    @property
    def name(self) -> str:
        return self._descriptor.name

    @property
    def descriptor(self) -> CompilerDescriptor:
        return self._descriptor

    @property
    def deps(self) -> list[str]:
        return list(self._descriptor.deps)

    @property
    def valid_archive(self) -> bool:
        return self._descriptor.valid_archive

    def compile(
        self, context: GenerationContext, request: GenerationRequest
    ) -> list[FileNode]:
        return self._compile(context, request)

    @abstractmethod
    def _compile(
        self, context: GenerationContext, request: GenerationRequest
    ) -> list[FileNode]: ...

    def __repr__(self) -> str:
        suffixes = ", ".join(self._descriptor.output_suffixes)
        return f"{self.__class__.__name__}({self.name!r}, suffixes=[{suffixes}])"


class DefaultProtoCompiler(BaseProtoCompiler):
    """Plans outputs and runs the generator wrapper once per request."""

    def _compile(
        self, context: GenerationContext, request: GenerationRequest
    ) -> list[FileNode]:
        planned = plan_outputs(context, self._descriptor, request)
        result = self._invoker.invoke(context, self._descriptor, request, planned)
        return result.outputs


class MethodsOnlyProtoCompiler(DefaultProtoCompiler):
    """A compiler that adds methods to types generated by another compiler.

    Its output is not buildable on its own, so it depends on the base
    compiler's implicit dependencies and must be combined with a compiler
    whose output is.
    """

    def __init__(
        self,
        descriptor: CompilerDescriptor,
        base: ProtoCompiler,
        invoker: GeneratorInvoker | None = None,
    ) -> None:
        if descriptor.valid_archive:
            raise ConfigureError(
                f"compiler {descriptor.name} adds methods to another compiler's "
                "types and must set valid_archive=False"
            )
        if not base.valid_archive:
            raise ConfigureError(
                f"base compiler {base.descriptor.name} of {descriptor.name} "
                "does not produce buildable sources"
            )
        super().__init__(descriptor, invoker)
        self._base = base

    @property
    def base(self) -> ProtoCompiler:
        return self._base

    @property
    def deps(self) -> list[str]:
        result = list(self._base.deps)
        for dep in self._descriptor.deps:
            if dep not in result:
                result.append(dep)
        return result


def library_deps(compilers: Sequence[ProtoCompiler]) -> list[str]:
    """Validate the compilers of one library and return its implicit deps.

    Raises:
        ConfigureError: If no compiler is given, or none of them produces
            buildable sources.
    """
    if not compilers:
        raise ConfigureError("a proto library needs at least one compiler")
    if not any(c.valid_archive for c in compilers):
        names = ", ".join(c.descriptor.name for c in compilers)
        raise ConfigureError(
            f"compilers {names} only add methods to other types; "
            "at least one compiler must produce buildable sources"
        )
    deps: list[str] = []
    for c in compilers:
        for dep in c.deps:
            if dep not in deps:
                deps.append(dep)
    return deps


def compile_library(
    context: GenerationContext,
    compilers: Sequence[ProtoCompiler],
    request: GenerationRequest,
) -> list[FileNode]:
    """Run every compiler of a library over request.

    Returns:
        All generated sources, grouped by compiler in the given order.
    """
    library_deps(compilers)
    outputs: list[FileNode] = []
    for c in compilers:
        outputs.extend(c.compile(context, request))
    return outputs


@dataclass
class CompilerOptions:
    """Per-compiler settings that are not tool locations.

    Attributes:
        deps: Implicit library dependencies.
        suffix: Single output suffix.
        suffixes: Multiple output suffixes.
        options: Plugin options.
        import_path_option: Pass import_path=<importpath> to the plugin.
        valid_archive: Whether output is buildable on its own.
    """

    deps: list[str] = field(default_factory=list)
    suffix: str = DEFAULT_SUFFIX
    suffixes: list[str] = field(default_factory=list)
    options: list[str] = field(default_factory=list)
    import_path_option: bool = False
    valid_archive: bool = True


def proto_compiler(
    name: str,
    config: CompilerConfig,
    *,
    plugin: FileNode | Path | str | None = None,
    options: CompilerOptions | None = None,
    base: ProtoCompiler | None = None,
) -> ProtoCompiler:
    """Create a proto compiler.

    Tool locations not given explicitly come from config.

    Args:
        name: Compiler name.
        config: Resolved tool locations and defaults.
        plugin: The protoc plugin. Defaults to config.plugin.
        options: Compiler settings.
        base: For compilers with valid_archive=False, the compiler whose
            types they extend.

    Returns:
        A DefaultProtoCompiler, or a MethodsOnlyProtoCompiler when
        options.valid_archive is False.
    """
    options = options or CompilerOptions(suffix=config.suffix)
    descriptor = CompilerDescriptor(
        name=name,
        plugin=_as_node(plugin if plugin is not None else config.plugin),
        protoc=_as_node(config.protoc),
        go_protoc=_as_node(config.go_protoc),
        deps=tuple(options.deps),
        suffix=options.suffix,
        suffixes=tuple(options.suffixes),
        options=tuple(options.options),
        import_path_option=options.import_path_option,
        valid_archive=options.valid_archive,
    )
    if descriptor.valid_archive:
        return DefaultProtoCompiler(descriptor)
    if base is None:
        raise ConfigureError(
            f"compiler {name} has valid_archive=False and needs a base compiler"
        )
    return MethodsOnlyProtoCompiler(descriptor, base)
