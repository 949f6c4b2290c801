"""Marginalia rich error messages: actionable feedback.

Every error shown to the user contains:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from marginalia.cli.errors import err_no_db
    console.print(err_no_db(".marginalia.db"))
    raise typer.Exit(1)
"""

from __future__ import annotations


def err_no_api_key(provider: str, env_var: str | None = None) -> str:
    """No API key for *provider*.

    Example:
        No API key for 'openai'. Set:  export OPENAI_API_KEY=sk-...
    """
    env_var = env_var or f"{provider.upper()}_API_KEY"
    return (
        f"[red]Error:[/] No API key for '{provider}'.\n"
        f"  Set:  export {env_var}=sk-..."
    )


def err_no_db(db_path: str = ".marginalia.db") -> str:
    """No library database at *db_path*."""
    return (
        f"[red]Error:[/] No database found at '{db_path}'.\n"
        "  Run:  marginalia init"
    )


def err_not_found(kind: str, record_id: str) -> str:
    """Record absent, or owned by someone else."""
    command = {"Book": "books list", "Folder": "folders list"}.get(kind, "snippets list")
    return (
        f"[yellow]{kind} not found:[/] '{record_id}' is not in your library.\n"
        f"  Run:  marginalia {command}  to see what you have."
    )


def err_validation(message: str) -> str:
    """Input rejected before anything was stored."""
    return (
        f"[red]Error:[/] {message}\n"
        "  Use:  --help  to see the required options."
    )


def err_collaborator(message: str) -> str:
    """An external service (model provider, book lookup) failed."""
    return (
        f"[red]Error:[/] {message}\n"
        "  Check your network connection and provider status, then run the command again."
    )


def err_config(message: str) -> str:
    """marginalia.yaml or the global config is invalid."""
    return (
        f"[red]Error:[/] Invalid configuration: {message}\n"
        "  Fix marginalia.yaml or ~/.marginalia/config.yaml and remove the offending key."
    )


def err_search_timeout(timeout: float) -> str:
    return (
        f"[red]Error:[/] Search did not finish within {timeout:g}s.\n"
        "  Use:  --timeout  with a larger value, or omit it to wait."
    )


def warn_degraded_embeddings(model: str) -> str:
    """Semantic search runs without credentials (zero vectors)."""
    return (
        f"[yellow]⚠[/] No API key for embedding model '{model}'; semantic results are disabled.\n"
        "  Set the provider key and run:  marginalia reindex"
    )
