# SPDX-License-Identifier: MIT
"""Programs run by generation actions."""
