"""Error taxonomy for the upload pipeline. Routers turn UploadRejected into JSON responses."""


class VidshareError(Exception):
    """Base for vidshare-specific errors."""


class StorageError(VidshareError):
    """Storage directories could not be prepared. Fatal at startup."""


class UploadRejected(VidshareError):
    """A single upload request failed; carries the HTTP status and a readable message."""

    status_code = 500

    def __init__(self, message: str, *, error: str | None = None):
        super().__init__(message)
        self.message = message
        self.error = error

    def to_content(self) -> dict:
        if self.status_code >= 500:
            return {"message": self.message, "error": self.error or self.message}
        return {"message": self.message}


class ClientInputError(UploadRejected):
    """Missing file, disallowed type, oversize file, blank title."""

    status_code = 400


class ProcessingError(UploadRejected):
    """Copy, transcode or thumbnail step failed.

    client_fault=True means FFmpeg rejected the input itself (unsupported codec,
    corrupt container) and is reported as 400; anything else is a 500.
    """

    def __init__(self, message: str, *, client_fault: bool = False, error: str | None = None):
        super().__init__(message, error=error)
        self.client_fault = client_fault
        self.status_code = 400 if client_fault else 500


class PersistenceError(UploadRejected):
    """Metadata row could not be written."""

    status_code = 500
