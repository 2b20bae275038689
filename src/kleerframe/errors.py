"""Exception hierarchy shared by the fingerprinting and matching pipeline."""


class KleerframeError(Exception):
    """Base class for all package errors."""


class DecodeFailure(KleerframeError):
    """Raised when an image cannot be read or decoded into a pixel grid."""


class InvalidGridError(KleerframeError, ValueError):
    """Raised when a pixel grid cannot be fingerprinted (wrong shape or size)."""


class LengthMismatchError(KleerframeError, ValueError):
    """Raised when two fingerprints of different lengths are compared."""


class QuotaExhaustedError(KleerframeError):
    """Raised when a free account has no match views left."""
