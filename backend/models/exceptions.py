"""
Custom domain exceptions for the application.

Services raise these and the centralized exception handlers in main.py turn
them into HTTP responses, so the service layer stays HTTP-agnostic and can be
driven from tests or background jobs directly.

Every exception carries a correlation ID so the response a user sees can be
matched with the server log line.
"""

from core.correlation import generate_correlation_id, get_correlation_id


class DomainException(Exception):
    """
    Base class for all domain exceptions.

    Attributes:
        message: Human-readable error message.
        correlation_id: Unique ID for error tracking (auto-generated if not provided).
    """

    def __init__(self, message: str, correlation_id: str | None = None):
        self.message = message
        self.correlation_id = (
            correlation_id or get_correlation_id() or generate_correlation_id()
        )
        super().__init__(self.message)


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    pass


class PermissionDeniedException(DomainException):
    """Raised when the acting user is neither the owner nor privileged."""

    pass


class ValidationException(DomainException):
    """Raised when input validation fails."""

    pass


class ConflictException(DomainException):
    """Raised when an operation conflicts with the current state."""

    pass


class AuthenticationException(DomainException):
    """Raised when authentication fails."""

    pass


class AlreadyExistsException(ConflictException):
    """Raised when trying to create a resource that already exists."""

    pass


# Specific exceptions for domain entities


class UserNotFoundException(NotFoundException):
    """User not found."""

    pass


class UserAlreadyExistsException(AlreadyExistsException):
    """Email or username already taken."""

    pass


class ReportNotFoundException(NotFoundException):
    """Report not found."""

    pass


class CommentNotFoundException(NotFoundException):
    """Comment not found."""

    pass


class ReplyNotFoundException(NotFoundException):
    """Reply not found."""

    pass


class InvalidCredentialsException(AuthenticationException):
    """Invalid credential or password."""

    pass


class InactiveUserException(PermissionDeniedException):
    """User account is inactive."""

    pass


class InsufficientPermissionsException(PermissionDeniedException):
    """User doesn't have sufficient permissions."""

    pass


class InvalidCursorException(ValidationException):
    """Pagination cursor is not an ISO-8601 timestamp."""

    def __init__(self, cursor: str) -> None:
        super().__init__(f"Invalid cursor '{cursor}': expected an ISO-8601 timestamp")
        self.cursor = cursor


class InvalidStatusTransitionException(ConflictException):
    """Raised when the AI report state machine is asked to move backwards."""

    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"AI report cannot move from '{current}' to '{target}'")
        self.current = current
        self.target = target


# ============================================================================
# Image upload exceptions
# ============================================================================


class ImageTooLargeException(ValidationException):
    """An uploaded image exceeds the per-file size cap."""

    def __init__(self, max_bytes: int) -> None:
        max_mb = max_bytes // (1024 * 1024)
        super().__init__(f"File too large. Maximum {max_mb}MB per file.")
        self.max_bytes = max_bytes


class InvalidImageTypeException(ValidationException):
    """An uploaded file is not an image."""

    def __init__(self, message: str = "Invalid file type. Only images are allowed."):
        super().__init__(message)


class TooManyImagesException(ValidationException):
    """More images than a single report may carry."""

    def __init__(self, max_images: int) -> None:
        super().__init__(f"Too many files. Maximum {max_images} images allowed.")
        self.max_images = max_images


class UploadCancelledException(DomainException):
    """The client disconnected while its images were being uploaded."""

    def __init__(self, message: str = "Upload was cancelled"):
        super().__init__(message)


class UploadTimeoutException(DomainException):
    """Object storage did not answer in time."""

    def __init__(
        self, message: str = "Upload timeout. Please try again with smaller files."
    ):
        super().__init__(message)


# ============================================================================
# External service exceptions
# ============================================================================


class UpstreamDegradedException(DomainException):
    """
    An external AI or geocoding call failed.

    Always recovered locally with a fallback value; never surfaced to clients.
    """

    pass


class UpstreamFatalException(DomainException):
    """An external call failed in a way that aborts the request."""

    pass


class StorageUploadException(UpstreamFatalException):
    """Object storage rejected or failed an upload."""

    pass
