"""
Application Constants for FileHub.

Centralizes roles, notification types, limits, and magic numbers.

Dynamic configuration (from environment variables) lives in config.py.
This file only contains true constants that don't change between environments.
"""

# =============================================================================
# Roles
# =============================================================================

ROLE_USER = "user"
ROLE_CORE_ADMIN = "core_admin"
ROLE_SUPERADMIN = "superadmin"

ALL_ROLES = (ROLE_USER, ROLE_CORE_ADMIN, ROLE_SUPERADMIN)
ADMIN_ROLES = frozenset({ROLE_CORE_ADMIN, ROLE_SUPERADMIN})

# =============================================================================
# Notification Types
# =============================================================================

NOTIFICATION_FILE_UPLOAD = "file_upload"
NOTIFICATION_ADMIN_POST = "admin_post"
NOTIFICATION_FILE_REFERENCE = "file_reference"
NOTIFICATION_COMMENT = "comment"

# =============================================================================
# Object Storage
# =============================================================================

DEFAULT_BUCKET = "files"
DEFAULT_SIGNED_URL_EXPIRE_SECONDS = 60
MAX_SIGNED_URL_EXPIRE_SECONDS = 7 * 24 * 3600  # one week
SIGNED_URL_PURPOSE = "storage-read"
DEFAULT_CONTENT_TYPE = "application/octet-stream"

# Preview kinds keyed off MIME type
TEXT_PREVIEW_TYPES = frozenset({"application/json", "application/xml"})

# =============================================================================
# Upload Limits
# =============================================================================

DEFAULT_MAX_UPLOAD_SIZE_MB = 50

# =============================================================================
# Content Limits
# =============================================================================

MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_LENGTH = 72  # bcrypt only reads the first 72 bytes
MAX_NAME_LENGTH = 255
MAX_FULL_NAME_LENGTH = 255
MAX_DESCRIPTION_LENGTH = 5000
MAX_TITLE_LENGTH = 255
MAX_POST_CONTENT_LENGTH = 50_000
MAX_COMMENT_LENGTH = 10_000
MAX_URL_LENGTH = 2048
MAX_SEARCH_QUERY_LENGTH = 200

# =============================================================================
# Dashboard
# =============================================================================

RECENT_ITEMS_LIMIT = 5

# =============================================================================
# Authentication Configuration
# =============================================================================

DEFAULT_TOKEN_EXPIRE_MINUTES = 1440  # 24 hours
JWT_ALGORITHM = "HS256"
ACCESS_TOKEN_TYPE = "access"
