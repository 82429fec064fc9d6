# SPDX-License-Identifier: MIT
"""Tool discovery and configuration."""
