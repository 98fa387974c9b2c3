"""Interfaces consumed by agent hosts."""

from .tool import BaseTool, ToolCategory, ToolMetadata, ToolParameter

__all__ = ["BaseTool", "ToolCategory", "ToolMetadata", "ToolParameter"]
