"""Exception taxonomy shared by services, providers, and the CLI.

Only authoritative-path failures reach the caller. Best-effort failures
(background vector indexing, malformed model output) are logged and never
raised, and degraded configuration is not an error at all.
"""

from __future__ import annotations


class MarginaliaError(Exception):
    """Base class for all Marginalia errors."""


class ValidationError(MarginaliaError, ValueError):
    """Required input is missing or invalid; the operation was not attempted."""


class NotFoundError(MarginaliaError, LookupError):
    """Record is absent or owned by someone else (the two are indistinguishable)."""

    def __init__(self, kind: str, record_id: str) -> None:
        super().__init__(f"{kind} '{record_id}' not found")
        self.kind = kind
        self.record_id = record_id


class CollaboratorError(MarginaliaError, RuntimeError):
    """An external collaborator failed on a path the caller is waiting for."""


class SearchTimeoutError(MarginaliaError, TimeoutError):
    """Hybrid search did not finish within the caller's timeout."""

    def __init__(self, timeout: float) -> None:
        super().__init__(f"Search did not finish within {timeout}s")
        self.timeout = timeout


class MissingApiKeyError(CollaboratorError):
    """The model provider's credential is not set in the environment."""

    def __init__(self, provider: str, env_var: str | None) -> None:
        super().__init__(f"API key not found for provider '{provider}'. Set {env_var}.")
        self.provider = provider
        self.env_var = env_var
