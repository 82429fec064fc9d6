# SPDX-License-Identifier: MIT
"""Configure context for protobuild.

The Configure class resolves the tools a proto compiler needs (protoc,
the protoc plugin and the generator wrapper) and caches what it found, so
later runs do not search again. Defaults live in CompilerConfig and are
passed explicitly to compiler factories.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from protobuild.configure.platform import get_platform
from protobuild.core.errors import ToolNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_PROTOC = "protoc"
DEFAULT_PLUGIN = "protoc-gen-go"
DEFAULT_GO_PROTOC = "protobuild-protoc"


@dataclass
class ProgramInfo:
    """Information about a found program.

    Attributes:
        path: Path to the program executable.
        version: Version string if detected.
    """

    path: Path
    version: str | None = None


@dataclass
class CompilerConfig:
    """Tool locations and defaults for proto compilers.

    Attributes:
        protoc: The protoc binary.
        plugin: The default protoc plugin.
        go_protoc: The generator wrapper.
        suffix: The default output suffix.
        env: Explicit environment for generator actions.
    """

    protoc: Path | str = DEFAULT_PROTOC
    plugin: Path | str = DEFAULT_PLUGIN
    go_protoc: Path | str = DEFAULT_GO_PROTOC
    suffix: str = ".pb.go"
    env: dict[str, str] = field(default_factory=dict)


class Configure:
    """Context for the configure phase.

    The Configure class manages:
    - Program/tool discovery
    - Configuration caching

    Example:
        config = Configure(build_dir=Path("build"))

        protoc = config.find_program("protoc", required=True)
        compiler_config = config.compiler_config(plugin="protoc-gen-gogo")

        # Save configuration for later
        config.save()

    Attributes:
        platform: The detected platform.
        build_dir: Directory for build outputs and cache.
    """

    def __init__(
        self,
        *,
        build_dir: Path | str = "build",
        cache_file: str = "protobuild_config.json",
    ) -> None:
        """Create a configure context.

        Args:
            build_dir: Directory for build outputs.
            cache_file: Name of the cache file within build_dir.
        """
        self.platform = get_platform()
        self.build_dir = Path(build_dir)
        self._cache_file = cache_file
        self._cache: dict[str, Any] = {}
        self._programs: dict[str, ProgramInfo] = {}

        # Try to load existing cache
        self._load_cache()

    def _cache_path(self) -> Path:
        """Get the path to the cache file."""
        return self.build_dir / self._cache_file

    def _load_cache(self) -> None:
        """Load configuration from cache file if it exists."""
        cache_path = self._cache_path()
        if cache_path.exists():
            try:
                with open(cache_path) as f:
                    self._cache = json.load(f)
            except (json.JSONDecodeError, OSError):
                logger.warning("Ignoring unreadable config cache %s", cache_path)
                self._cache = {}

    def save(self, path: Path | None = None) -> None:
        """Save configuration to cache file.

        Args:
            path: Optional path override for cache file.
        """
        cache_path = path or self._cache_path()
        cache_path.parent.mkdir(parents=True, exist_ok=True)

        with open(cache_path, "w") as f:
            json.dump(self._cache, f, indent=2, default=str)
            f.write("\n")

    def set(self, key: str, value: Any) -> None:
        """Set a configuration value."""
        self._cache[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value."""
        return self._cache.get(key, default)

    def find_program(
        self,
        name: str,
        *,
        hints: list[Path | str] | None = None,
        version_flag: str | None = "--version",
        required: bool = False,
    ) -> ProgramInfo | None:
        """Find a program on the system.

        Searches for the program in:
        1. Hint paths (if provided)
        2. PATH environment variable

        A name containing a path separator is checked as a path directly.

        Args:
            name: Program name (e.g., 'protoc', 'protoc-gen-go').
            hints: Additional paths to search.
            version_flag: Flag to get version, or None to skip detection.
            required: If True, raise error if not found.

        Returns:
            ProgramInfo if found, None otherwise.

        Raises:
            ToolNotFoundError: If required and not found.
        """
        if name in self._programs:
            return self._programs[name]

        # Check cache first
        cache_key = f"program:{name}"
        if cache_key in self._cache:
            cached = self._cache[cache_key]
            path = Path(cached["path"])
            if path.exists():
                info = ProgramInfo(path=path, version=cached.get("version"))
                self._programs[name] = info
                return info

        found_path: Path | None = None

        if "/" in name or os.sep in name:
            candidate = Path(name)
            if candidate.is_file() and os.access(candidate, os.X_OK):
                found_path = candidate.absolute()

        # Check hints first
        if found_path is None and hints:
            for hint in hints:
                hint_path = Path(hint)
                if hint_path.is_file() and os.access(hint_path, os.X_OK):
                    found_path = hint_path
                    break
                # Check if hint is a directory containing the program
                candidate = hint_path / name
                if not candidate.suffix:
                    exe = candidate.name + self.platform.exe_suffix
                    candidate = candidate.with_name(exe)
                if candidate.is_file() and os.access(candidate, os.X_OK):
                    found_path = candidate
                    break

        # Search PATH
        if found_path is None:
            found_path = self._which(name)

        if found_path is None:
            if required:
                raise ToolNotFoundError(name)
            logger.debug("Program not found: %s", name)
            return None

        version = None
        if version_flag:
            version = self._get_program_version(found_path, version_flag)

        self._cache[cache_key] = {
            "path": str(found_path),
            "version": version,
        }
        logger.debug("Found %s at %s (%s)", name, found_path, version or "no version")

        info = ProgramInfo(path=found_path, version=version)
        self._programs[name] = info
        return info

    def _which(self, name: str) -> Path | None:
        """Find a program in PATH using shutil.which."""
        result = shutil.which(name)
        if result:
            return Path(result)
        return None

    def _get_program_version(self, path: Path, version_flag: str) -> str | None:
        """Try to get the version of a program."""
        try:
            result = subprocess.run(
                [str(path), version_flag],
                capture_output=True,
                text=True,
                timeout=5,
            )
            if result.returncode == 0:
                # Return first non-empty line
                for line in result.stdout.split("\n"):
                    line = line.strip()
                    if line:
                        return line
            return None
        except (subprocess.TimeoutExpired, OSError):
            return None

    def require_program(
        self,
        name: str,
        *,
        hints: list[Path | str] | None = None,
        version_flag: str | None = "--version",
    ) -> ProgramInfo:
        """Like find_program, but a missing program is always an error."""
        info = self.find_program(name, hints=hints, version_flag=version_flag)
        if info is None:
            raise ToolNotFoundError(name)
        return info

    def compiler_config(
        self,
        *,
        protoc: str = DEFAULT_PROTOC,
        plugin: str = DEFAULT_PLUGIN,
        go_protoc: str = DEFAULT_GO_PROTOC,
        suffix: str = ".pb.go",
        env: dict[str, str] | None = None,
        hints: list[Path | str] | None = None,
    ) -> CompilerConfig:
        """Resolve the tools proto compilers need.

        Plugins and the wrapper do not implement a version flag, so only
        protoc's version is recorded.

        Raises:
            ToolNotFoundError: If any tool cannot be found.
        """
        protoc_info = self.require_program(protoc, hints=hints)
        plugin_info = self.require_program(plugin, hints=hints, version_flag=None)
        wrapper_info = self.require_program(go_protoc, hints=hints, version_flag=None)
        return CompilerConfig(
            protoc=protoc_info.path,
            plugin=plugin_info.path,
            go_protoc=wrapper_info.path,
            suffix=suffix,
            env=dict(env or {}),
        )

    def __repr__(self) -> str:
        return (
            f"Configure(platform={self.platform.os}/{self.platform.arch}, "
            f"build_dir={self.build_dir})"
        )


def load_config(path: Path | str = "build/protobuild_config.json") -> dict[str, Any]:
    """Load a saved configuration.

    Args:
        path: Path to the config file.

    Returns:
        Configuration dict.

    Raises:
        FileNotFoundError: If config file doesn't exist.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        data: dict[str, Any] = json.load(f)
        return data
