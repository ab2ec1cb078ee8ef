"""Exception hierarchy for trustroute."""

from __future__ import annotations


class TrustRouteError(Exception):
    """Base class for all trustroute errors."""


class ManifestValidationError(TrustRouteError, ValueError):
    """A capability manifest failed validation and was not stored."""


class UnsupportedSourceError(TrustRouteError, ValueError):
    """An agent source variant or file type cannot be analyzed."""


class SourceAnalysisError(TrustRouteError):
    """An agent source could not be read or decoded."""


class FlagConfigError(TrustRouteError, ValueError):
    """A feature flag configuration is invalid."""


class OverrideError(TrustRouteError):
    """A manual override could not be approved."""
