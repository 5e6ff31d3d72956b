"""Custom exceptions for Kontent Restore.

This module defines exception classes for handling the error conditions that
can occur while talking to the Management API and while restoring a snapshot.
"""


class KontentRestoreError(Exception):
    """Base exception for all Kontent Restore errors."""

    pass


class APIError(KontentRestoreError):
    """Base class for API-related errors."""

    def __init__(self, message: str, status_code: int | None = None, response: dict | None = None):
        """Initialize API error.

        Args:
            message: Error message
            status_code: HTTP status code
            response: API response body
        """
        self.message = message
        self.status_code = status_code
        self.response = response
        super().__init__(self.format_message())

    def format_message(self) -> str:
        """Format error message with status code and response."""
        msg = self.message
        if self.status_code:
            msg = f"[{self.status_code}] {msg}"
        if self.response:
            msg = f"{msg}: {self.response}"
        return msg


class AuthenticationError(APIError):
    """Raised when authentication fails (401 Unauthorized)."""

    pass


class AuthorizationError(APIError):
    """Raised when authorization fails (403 Forbidden)."""

    pass


class NotFoundError(APIError):
    """Raised when a resource is not found (404 Not Found)."""

    pass


class ConflictError(APIError):
    """Raised when a resource conflict occurs (409 Conflict).

    The Management API answers 409 when a codename or external id is already
    taken in the target project.
    """

    pass


class RateLimitError(APIError):
    """Raised when API rate limit is exceeded (429 Too Many Requests)."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response: dict | None = None,
        retry_after: int | None = None,
    ):
        """Initialize rate limit error.

        Args:
            message: Error message
            status_code: HTTP status code
            response: API response body
            retry_after: Seconds to wait before retrying (from Retry-After header)
        """
        super().__init__(message, status_code, response)
        self.retry_after = retry_after


class ServerError(APIError):
    """Raised when server returns 5xx error."""

    pass


class NetworkError(KontentRestoreError):
    """Raised when network-related errors occur (timeouts, connection failures)."""

    pass


class ConfigurationError(KontentRestoreError):
    """Raised when configuration is invalid or missing."""

    pass


class SourceError(KontentRestoreError):
    """Raised when a snapshot cannot be loaded."""

    pass


class RestoreError(KontentRestoreError):
    """Raised when a restore run fails."""

    pass


class PreconditionError(RestoreError):
    """Raised when an entity cannot be sent because a precondition does not hold.

    Precondition errors are raised before (or instead of) the network call and
    abort the run.
    """

    pass


class MissingBinaryFileError(PreconditionError):
    """Raised when an asset has no companion binary payload."""

    def __init__(self, asset_id: str):
        self.asset_id = asset_id
        super().__init__(f"Could not find binary file for asset with id '{asset_id}'")


class MissingCodenameError(PreconditionError):
    """Raised when a reference that must carry a codename does not."""

    pass


class UnresolvedReferenceError(PreconditionError):
    """Raised when an original id cannot be mapped to an imported id.

    The referenced entity was either never imported or failed, which points at
    an ordering or filtering problem.
    """

    def __init__(self, kind: str, original_id: str, context: str | None = None):
        self.kind = kind
        self.original_id = original_id
        self.context = context
        message = f"No imported {kind} found for original id '{original_id}'"
        if context:
            message = f"{message} (referenced from {context})"
        super().__init__(message)


class FolderMismatchError(PreconditionError):
    """Raised when the created asset folder tree cannot be matched to the original."""

    pass


class LanguageMismatchError(PreconditionError):
    """Raised when default language codenames differ between source and target."""

    def __init__(self, source_codename: str, target_codename: str):
        self.source_codename = source_codename
        self.target_codename = target_codename
        super().__init__(
            f"Codename of default language from imported data does not match target project. "
            f"The source language codename is '{source_codename}' while target is "
            f"'{target_codename}'. Please update codename of default language in target "
            f"project to be '{source_codename}' or enable fix_languages"
        )


class DuplicateLedgerEntryError(RestoreError):
    """Raised when the same original entity is recorded twice in the ledger."""

    def __init__(self, kind: str, original_id: str):
        self.kind = kind
        self.original_id = original_id
        super().__init__(f"Entity {kind} with original id '{original_id}' is already recorded")
