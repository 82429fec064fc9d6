# SPDX-License-Identifier: MIT
"""Import path resolution for schema files.

The import path of a .proto file is the string other .proto files use to
import it. It is the file's path within its repository, adjusted by any
import prefix or strip-import-prefix rules applied to its library.
"""

from __future__ import annotations

import logging
import posixpath
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from protobuild.core.node import SchemaFile, SchemaInfo

logger = logging.getLogger(__name__)

# source_root value used for libraries whose sources were generated
GENERATED_SOURCE_ROOT = "."


def import_prefix(src: SchemaFile, info: SchemaInfo) -> str:
    """Return the path prefix to strip from src to get its import path.

    The prefix always ends with a "/" separator.
    """
    source_root = info.source_root
    if source_root == GENERATED_SOURCE_ROOT:
        # generated sources: import paths are relative to the output root
        return src.root + "/"
    if source_root.startswith(src.root):
        # source_root already includes the storage root
        return source_root + "/"
    # usually true when paths are not adjusted
    return posixpath.join(src.root, source_root) + "/"


def proto_path(src: SchemaFile, info: SchemaInfo) -> str:
    """Return the string used to import src.

    This is the proto source path within its repository, adjusted by
    import_prefix and strip_import_prefix. It never fails: when the file
    does not live under the computed prefix, its full path is returned.

    Args:
        src: The schema source file.
        info: Metadata of the library src belongs to.

    Returns:
        An import path string.
    """
    prefix = import_prefix(src, info)
    path = src.posix_path
    if not path.startswith(prefix):
        logger.debug(
            "%s is not under %s, using its full path as import path", path, prefix
        )
        return path
    return path[len(prefix) :]
