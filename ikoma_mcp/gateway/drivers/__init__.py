"""Bindings to the external collaborators the gateway orchestrates.

- ``CommandRunner``: async subprocess execution (argument vectors only).
- ``GitDriver``: clone / fetch-and-fast-forward / revision lookup.
- ``ComposeDriver``: docker compose up / down / restart / running state.
- ``SupabaseCli``: migration push and edge-function deploy.
- ``DatabaseDriver``: per-application PostgreSQL databases.
"""

from .compose import ComposeDriver
from .database import DatabaseDriver, database_name_for
from .git import GitDriver
from .process import CommandResult, CommandRunner
from .supabase import SupabaseCli

__all__ = [
    "CommandResult",
    "CommandRunner",
    "ComposeDriver",
    "DatabaseDriver",
    "GitDriver",
    "SupabaseCli",
    "database_name_for",
]
