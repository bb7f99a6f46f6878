from __future__ import annotations

from forksync.cli.context import build_context
from forksync.output.console import Style


def where() -> None:
    """Print the resolved workspace, config file and remotes."""
    ctx = build_context()
    s = ctx.settings
    missing = "" if ctx.workspace.exists() else "(not created yet) "
    ctx.console.print(f"workspace:    {missing}{ctx.workspace}")
    ctx.console.print(f"config:       {ctx.config_path}", Style.DIM)
    ctx.console.print(f"organization: {s.organization}")
    ctx.console.print(f"fork account: {s.fork_account}")
    ctx.console.print(f"exclude:      {s.exclude or '(none)'}")
    ctx.console.print(f"origin url:   {s.origin_url}", Style.DIM)
    ctx.console.print(f"fork url:     {s.fork_url}", Style.DIM)
    ctx.console.print(f"token:        {'set' if s.token else 'not set'}", Style.DIM)
