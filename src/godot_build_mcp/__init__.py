"""Godot C# build panel exposed over MCP, with assembly hot-reload."""

__version__ = "0.1.0"
