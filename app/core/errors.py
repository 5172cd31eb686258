# app/core/errors.py
"""
Failure taxonomy for the media-to-verdict pipeline.

Every error aborts the whole run. ``status_code`` is what the HTTP layer
reports; the message is shown to the user as-is.
"""


class ForensicsError(Exception):
    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MediaValidationError(ForensicsError):
    """Caller-supplied input failed type or size checks."""
    status_code = 400


class UnsupportedMediaError(MediaValidationError):
    status_code = 415


class MediaTooLargeError(MediaValidationError):
    status_code = 413


class ReadError(ForensicsError):
    """The uploaded file could not be read."""
    status_code = 400


class DecodeError(ForensicsError):
    """The video could not be opened, measured or seeked."""
    status_code = 422


class SeekTimeoutError(ForensicsError, TimeoutError):
    """A frame seek did not complete in time."""
    status_code = 504


class ServiceError(ForensicsError):
    """The analysis service failed, returned nothing, or returned an invalid report."""
    status_code = 502


UNSUPPORTED_FORMAT_MESSAGE = "Unsupported file format. Please upload JPG, PNG, or MP4."
