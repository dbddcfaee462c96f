"""Typed async client and MCP server for the Paraşüt accounting API."""

from .auth import AuthenticationManager, Credentials
from .client import ParasutClient
from .errors import ParasutError, translate_fault
from .mcp_server import run_server

__all__ = [
    "AuthenticationManager",
    "Credentials",
    "ParasutClient",
    "ParasutError",
    "run_server",
    "translate_fault",
]
