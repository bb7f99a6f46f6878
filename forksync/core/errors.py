"""Process exit codes for the forksync CLI.

Shell scripts and cron wrappers branch on these values; keep them stable.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    OK = 0
    # missing or invalid configuration, reported before any network or disk activity
    USER_ERROR = 1
    # git is not on PATH
    ENV_ERROR = 2
    # at least one repository ended needs_attention
    SYNC_INCOMPLETE = 3
    # the catalog could not be fetched; no repository was touched
    NETWORK_ERROR = 4
    # the workspace root could not be created or written
    IO_ERROR = 5
