"""Custom exception hierarchy for the app builder."""

from errors.exceptions import (
    AppBuilderError,
    DecodeError,
    FeatureLockedError,
    GenerationFailed,
    ProjectNotFoundError,
    ProtocolViolation,
    ServiceNotConfiguredError,
    TransportError,
    UpstreamError,
)

__all__ = [
    "AppBuilderError",
    "DecodeError",
    "FeatureLockedError",
    "GenerationFailed",
    "ProjectNotFoundError",
    "ProtocolViolation",
    "ServiceNotConfiguredError",
    "TransportError",
    "UpstreamError",
]
