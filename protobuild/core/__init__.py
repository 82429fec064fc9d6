# SPDX-License-Identifier: MIT
"""Core data model, path resolution and action execution."""
