"""forksync - keep a workspace of organization repositories and their forks in sync."""

__version__ = "0.3.0"
