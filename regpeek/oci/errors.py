"""Failure taxonomy for registry inspection.

None of these cross the public operations: they are caught at the boundary
and reported to the caller as an inconclusive result.
"""


class InspectionError(Exception):
    """Base class for every inspection failure."""


class InvalidReference(InspectionError):
    """The image reference could not be parsed."""


class RoutingConfigError(InspectionError):
    """The registry host routing configuration is malformed."""


class RegistryError(InspectionError):
    """Talking to the registry failed."""


class AuthenticationError(RegistryError):
    """Raised when authentication fails."""


class ResolveFailure(RegistryError):
    """A reference could not be resolved to a descriptor.

    Not found, unauthorized and unreachable registries all end up here.
    """


class FetchFailure(RegistryError):
    """The content of a descriptor could not be fetched."""


class UnsupportedMediaType(InspectionError):
    """The resolved descriptor is not a manifest or index this operation reads."""

    def __init__(self, media_type: str):
        super().__init__(f"Unsupported media type: {media_type!r}")
        self.media_type = media_type


class DecodeFailure(InspectionError):
    """Fetched content is not a usable manifest or index."""
