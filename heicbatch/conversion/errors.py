"""Conversion exceptions and the failure classifier."""
import errno
import logging

from PIL import UnidentifiedImageError

from heicbatch.conversion.models import ConversionOutcome, FailureKind

logger = logging.getLogger("heicbatch.errors")

_PERMISSION_ERRNOS = {errno.EACCES, errno.EPERM}
_DISK_FULL_ERRNOS = {errno.ENOSPC, getattr(errno, "EDQUOT", errno.ENOSPC)}


class CodecUnavailableError(RuntimeError):
    """The codec subsystem cannot encode the required format on this system."""


class CodecSessionError(RuntimeError):
    """Per-thread codec session could not be set up, or is not active."""


class CorruptInputError(Exception):
    """Source file could not be decoded."""


class FinalizeError(Exception):
    """Staging artifact could not be published to its final path."""


def _raw_code(exc: BaseException) -> str:
    code = getattr(exc, "errno", None)
    if isinstance(exc, OSError) and code is not None:
        return f"errno {code}"
    return type(exc).__name__


def classify_failure(exc: BaseException) -> ConversionOutcome:
    """Map an exception raised while processing one task to a failed outcome.

    Purely informational: every kind is counted as a failure the same way.
    """
    if isinstance(exc, FinalizeError):
        cause = exc.__cause__ if exc.__cause__ is not None else exc
        detail = str(cause)
        if isinstance(cause, PermissionError) or getattr(cause, "errno", None) in _PERMISSION_ERRNOS:
            detail = "Permission Denied"
        return ConversionOutcome.failure(FailureKind.FINALIZE_FAILED, detail, _raw_code(cause))
    if isinstance(exc, (CorruptInputError, UnidentifiedImageError)):
        return ConversionOutcome.failure(FailureKind.CORRUPT_INPUT, str(exc), _raw_code(exc))
    code = getattr(exc, "errno", None) if isinstance(exc, OSError) else None
    if isinstance(exc, PermissionError) or code in _PERMISSION_ERRNOS:
        return ConversionOutcome.failure(FailureKind.PERMISSION_DENIED, str(exc), _raw_code(exc))
    if code in _DISK_FULL_ERRNOS:
        return ConversionOutcome.failure(FailureKind.DISK_FULL, str(exc), _raw_code(exc))
    logger.debug("Unclassified failure: %r", exc)
    return ConversionOutcome.failure(FailureKind.UNKNOWN, str(exc), _raw_code(exc))
