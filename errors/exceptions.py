"""Domain-specific exceptions for the app builder.

These exceptions let the generation pump, the API routers and the client
distinguish failure modes and respond with the matching ``error`` event or
HTTP status.
"""

from __future__ import annotations


class AppBuilderError(Exception):
    """Base class for all app builder errors."""


class UpstreamError(AppBuilderError):
    """The remote provider answered with a non-success status.

    Carries the provider's status code and raw error body so the client can
    show what the provider actually said.
    """

    def __init__(self, status_code: int, body: str = "", provider: str = "") -> None:
        self.status_code = status_code
        self.body = body
        self.provider = provider
        label = f"{provider} " if provider else ""
        super().__init__(f"{label}provider returned {status_code}: {body}")


class TransportError(AppBuilderError):
    """The connection dropped mid-stream or the generation ceiling was exceeded."""


class DecodeError(AppBuilderError):
    """A received frame could not be decoded into a protocol event."""

    def __init__(self, message: str, frame: str = "") -> None:
        self.frame = frame
        super().__init__(message)


class ProtocolViolation(AppBuilderError):
    """The event stream closed without a terminal ``done``/``error`` event."""


class GenerationFailed(AppBuilderError):
    """The server reported a terminal ``error`` event for a generation."""


class FeatureLockedError(AppBuilderError):
    """A gated feature was requested without an active unlock."""

    def __init__(self, feature: str) -> None:
        self.feature = feature
        super().__init__(f"Feature '{feature}' is locked, watch an ad to unlock it")


class ProjectNotFoundError(AppBuilderError):
    """A referenced project does not exist for the requesting owner."""

    def __init__(self, project_id: str) -> None:
        self.project_id = project_id
        super().__init__(f"project '{project_id}' not found")


class ServiceNotConfiguredError(AppBuilderError):
    """A third-party integration was called without its API key."""

    def __init__(self, service: str) -> None:
        self.service = service
        super().__init__(f"{service} service not configured")
