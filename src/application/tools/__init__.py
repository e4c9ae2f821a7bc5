from .builtin_tools import create_request_tool_factory, create_static_tools, get_current_time

__all__ = ["create_request_tool_factory", "create_static_tools", "get_current_time"]
