"""API controllers package."""

from .files_controller import FilesController
from .gpt_controller import GptController
from .mcp_controller import McpController

__all__ = [
    "GptController",
    "McpController",
    "FilesController",
]
