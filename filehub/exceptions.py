"""
Custom Exceptions for FileHub.

Provides specific exception types for different error scenarios. Services
raise these; main.py renders them as JSON with the class's status code.
"""


class FileHubError(Exception):
    """Base exception for all FileHub errors."""

    status_code = 500

    def __init__(self, message: str = "Internal error"):
        self.message = message
        super().__init__(message)


# =============================================================================
# Lookup / Permission Exceptions
# =============================================================================

class NotFoundError(FileHubError):
    """Raised when a row does not exist or is hidden from the caller."""

    status_code = 404

    def __init__(self, entity: str, entity_id: str = None):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found")


class PermissionDeniedError(FileHubError):
    """Raised when the caller's role does not allow the operation."""

    status_code = 403

    def __init__(self, message: str = "You do not have permission to perform this action"):
        super().__init__(message)


# =============================================================================
# Authentication Exceptions
# =============================================================================

class AuthenticationError(FileHubError):
    """Base exception for authentication errors."""

    status_code = 401


class InvalidCredentialsError(AuthenticationError):
    """Raised when credentials are invalid."""

    def __init__(self):
        super().__init__("Incorrect email or password")


# =============================================================================
# Validation Exceptions
# =============================================================================

class ValidationError(FileHubError):
    """Raised when a request is well-formed but semantically invalid."""

    status_code = 400


class DuplicateEmailError(ValidationError):
    """Raised when registering an email that already has a profile."""

    def __init__(self, email: str):
        self.email = email
        super().__init__("Email already registered")


class CategoryCycleError(ValidationError):
    """Raised when a parent change would make a category its own ancestor."""

    def __init__(self, category_id: str, parent_id: str):
        self.category_id = category_id
        self.parent_id = parent_id
        super().__init__("A folder cannot be moved inside itself or one of its subfolders")


class FileTooLargeError(ValidationError):
    """Raised when a file exceeds the maximum allowed size."""

    status_code = 413

    def __init__(self, size: int, max_size: int):
        self.size = size
        self.max_size = max_size
        super().__init__(f"File size ({size} bytes) exceeds maximum ({max_size} bytes)")


# =============================================================================
# Storage Exceptions
# =============================================================================

class StorageError(FileHubError):
    """Raised when the object store fails."""
    pass


class StorageObjectNotFoundError(StorageError):
    """Raised when a storage path has no object behind it."""

    status_code = 404

    def __init__(self, path: str):
        self.path = path
        super().__init__("File not found in storage")


class StorageConflictError(StorageError):
    """Raised when uploading to an occupied path without upsert."""

    status_code = 409

    def __init__(self, path: str):
        self.path = path
        super().__init__("A stored object already exists at this path")


class InvalidSignedURLError(StorageError):
    """Raised when a signed URL token is expired, tampered, or for another object."""

    status_code = 403

    def __init__(self, reason: str = "Invalid or expired signed URL"):
        super().__init__(reason)
