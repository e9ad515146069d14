"""Social Hub – Error taxonomy.

Every failure the hub handles deliberately derives from ``HubError``. The
HTTP layer maps each subclass to a status code; webhook processing catches
them and records an outcome instead.
"""

from __future__ import annotations


class HubError(Exception):
    """Base exception for the hub."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationFailure(HubError):
    """Malformed or unverifiable input (webhook body, handshake, request)."""

    status_code = 400


class Forbidden(ValidationFailure):
    """Webhook subscription handshake rejected."""

    status_code = 403


class NotFoundError(HubError):
    """Referenced user, page or conversation is not known."""

    status_code = 404


class ConfigurationMissing(HubError):
    """Credentials required for an operation have not been configured."""

    status_code = 400


class UpstreamCallFailure(HubError):
    """An outbound call to a platform or the AI API failed or timed out."""

    status_code = 502

    def __init__(
        self,
        message: str,
        *,
        target: str = "",
        upstream_status: int | None = None,
    ) -> None:
        super().__init__(message)
        self.target = target
        self.upstream_status = upstream_status
