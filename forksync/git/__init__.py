"""Git operations on workspace clones."""

from forksync.git.repository import GitError, GitStatus, Repository, StatusEntry, parse_status

__all__ = ["GitError", "GitStatus", "Repository", "StatusEntry", "parse_status"]
