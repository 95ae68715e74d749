"""Utility modules for godot-build-mcp."""

from .project import GodotProjectPaths, find_project_root, read_assembly_name

__all__ = [
    "GodotProjectPaths",
    "find_project_root",
    "read_assembly_name",
]
