"""
Input Sanitization Module

Provides functions to sanitize and validate user inputs before they are
written to the database or used to build storage paths:
- Uploaded filenames (display name and extension)
- Free text (titles, descriptions, post and comment bodies)
- Search queries used in LIKE patterns
- Avatar URLs

Every function raises ValidationError (HTTP 400) on bad input.
"""

import os
import re
from typing import Optional
from urllib.parse import urlparse

from .constants import (
    MAX_DESCRIPTION_LENGTH,
    MAX_NAME_LENGTH,
    MAX_SEARCH_QUERY_LENGTH,
    MAX_URL_LENGTH,
)
from .exceptions import ValidationError


# =============================================================================
# Configuration
# =============================================================================

MAX_FILENAME_LENGTH = 255
MAX_EXTENSION_LENGTH = 16
DEFAULT_EXTENSION = "bin"

EXTENSION_PATTERN = re.compile(r'^[a-z0-9]+$')

# Characters that may never appear in a stored display name
FORBIDDEN_FILENAME_CHARS = ['/', '\\', '\x00']

CONTROL_CHARS = re.compile(r'[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]')


# =============================================================================
# Filename Sanitization
# =============================================================================

def sanitize_filename(filename: str) -> str:
    """
    Sanitize an uploaded filename for use as the file's display name.

    The stored object path is generated separately, so the display name only
    has to be free of path separators and control characters.

    Args:
        filename: The filename sent by the client

    Returns:
        Trimmed filename

    Raises:
        ValidationError: If filename is empty, too long, or contains separators

    Examples:
        >>> sanitize_filename("  Quarterly report.pdf ")
        "Quarterly report.pdf"
        >>> sanitize_filename("../../etc/passwd")
        ValidationError (400)
    """
    if not filename or not filename.strip():
        raise ValidationError("Filename cannot be empty")

    filename = filename.strip()

    if len(filename) > MAX_FILENAME_LENGTH:
        raise ValidationError(f"Filename too long. Maximum {MAX_FILENAME_LENGTH} characters.")

    for char in FORBIDDEN_FILENAME_CHARS:
        if char in filename:
            raise ValidationError(f"Filename contains forbidden characters: '{filename}'")

    filename = CONTROL_CHARS.sub('', filename)

    if not filename.strip('. '):
        raise ValidationError("Filename invalid after sanitization")

    return filename


def get_file_extension(filename: str) -> str:
    """
    Extension used in generated storage paths.

    Lowercased and restricted to alphanumerics; files without a usable
    extension get "bin".

    Examples:
        >>> get_file_extension("Photo.JPG")
        "jpg"
        >>> get_file_extension("Makefile")
        "bin"
    """
    _, ext = os.path.splitext(filename or "")
    ext = ext.lstrip('.').lower()

    if not ext or len(ext) > MAX_EXTENSION_LENGTH or not EXTENSION_PATTERN.match(ext):
        return DEFAULT_EXTENSION
    return ext


# =============================================================================
# Text Content Sanitization
# =============================================================================

def sanitize_text_content(content: str, max_length: int, field: str = "Content") -> str:
    """
    Sanitize free text (post bodies, comments).

    Note: This does NOT strip HTML. Escaping happens at render time in the
    client. It only:
    - Rejects empty content
    - Validates length
    - Rejects null bytes
    - Normalizes line endings

    Raises:
        ValidationError: If content is empty, too long, or contains null bytes
    """
    if not content or not content.strip():
        raise ValidationError(f"{field} cannot be empty")

    if len(content) > max_length:
        raise ValidationError(f"{field} too long. Maximum {max_length} characters.")

    if '\x00' in content:
        raise ValidationError(f"{field} contains forbidden null bytes")

    return content.replace('\r\n', '\n').replace('\r', '\n').strip()


def sanitize_description(description: Optional[str]) -> Optional[str]:
    """Optional description; blank becomes None."""
    if description is None:
        return None

    description = description.strip()
    if not description:
        return None

    return sanitize_text_content(description, max_length=MAX_DESCRIPTION_LENGTH, field="Description")


def sanitize_name(name: str, field: str = "Name", max_length: int = MAX_NAME_LENGTH) -> str:
    """
    Sanitize a single-line name (folder name, file name, post title).

    Raises:
        ValidationError: If name is empty, too long, or contains control characters
    """
    if not name or not name.strip():
        raise ValidationError(f"{field} cannot be empty")

    name = name.strip()

    if len(name) > max_length:
        raise ValidationError(f"{field} too long. Maximum {max_length} characters.")

    if CONTROL_CHARS.search(name) or '\n' in name or '\r' in name:
        raise ValidationError(f"{field} contains invalid characters")

    return name


# =============================================================================
# Search Query Sanitization
# =============================================================================

def sanitize_search_query(query: Optional[str]) -> Optional[str]:
    """
    Prepare a search query for a LIKE pattern.

    Returns None for blank queries so callers can skip the filter. LIKE
    wildcards in the user's text are escaped with a backslash.
    """
    if query is None:
        return None

    query = query.strip()
    if not query:
        return None

    if len(query) > MAX_SEARCH_QUERY_LENGTH:
        raise ValidationError(f"Search query too long. Maximum {MAX_SEARCH_QUERY_LENGTH} characters.")

    return (
        query.replace('\\', '\\\\')
        .replace('%', '\\%')
        .replace('_', '\\_')
    )


# =============================================================================
# URL Validation
# =============================================================================

def validate_avatar_url(url: Optional[str]) -> Optional[str]:
    """
    Validate an avatar URL. Only http(s) URLs with a hostname are accepted.

    Blank values clear the avatar and return None.
    """
    if url is None:
        return None

    url = url.strip()
    if not url:
        return None

    if len(url) > MAX_URL_LENGTH:
        raise ValidationError(f"URL too long. Maximum {MAX_URL_LENGTH} characters.")

    parsed = urlparse(url)

    if parsed.scheme not in ['http', 'https']:
        raise ValidationError(f"URL scheme '{parsed.scheme}' not allowed. Only http/https permitted.")

    if not parsed.hostname:
        raise ValidationError("URL must have a hostname")

    return url
