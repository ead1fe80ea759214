"""Request and response schemas for the FileHub API."""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from .constants import (
    ALL_ROLES,
    MAX_COMMENT_LENGTH,
    MAX_DESCRIPTION_LENGTH,
    MAX_FULL_NAME_LENGTH,
    MAX_NAME_LENGTH,
    MAX_PASSWORD_LENGTH,
    MAX_POST_CONTENT_LENGTH,
    MAX_TITLE_LENGTH,
    MAX_URL_LENGTH,
    MIN_PASSWORD_LENGTH,
)

RoleName = Literal["user", "core_admin", "superadmin"]
PreviewKind = Literal["image", "pdf", "text", "none"]


# =============================================================================
# Authentication Models
# =============================================================================

class ProfileCreate(BaseModel):
    """Schema for registering a new account."""
    email: EmailStr
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH, max_length=MAX_PASSWORD_LENGTH)
    full_name: Optional[str] = Field(None, max_length=MAX_FULL_NAME_LENGTH)

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower()


class LoginRequest(BaseModel):
    """Schema for logging in."""
    email: EmailStr
    password: str

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower()


class Token(BaseModel):
    """JWT bearer token returned by POST /token."""
    access_token: str
    token_type: str = "bearer"


class PasswordChange(BaseModel):
    """Schema for changing the caller's password."""
    current_password: str
    new_password: str = Field(..., min_length=MIN_PASSWORD_LENGTH, max_length=MAX_PASSWORD_LENGTH)


# =============================================================================
# Profile Models
# =============================================================================

class Profile(BaseModel):
    """Public representation of a profile."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    role: RoleName
    created_at: datetime
    updated_at: datetime
    last_sign_in_at: Optional[datetime] = None


class ProfileUpdate(BaseModel):
    """Fields a user may change on their own profile."""
    full_name: Optional[str] = Field(None, max_length=MAX_FULL_NAME_LENGTH)
    avatar_url: Optional[str] = Field(None, max_length=MAX_URL_LENGTH)


class Preferences(BaseModel):
    """Dashboard display preferences."""
    model_config = ConfigDict(from_attributes=True)

    hide_recent_activity: bool = False
    hide_recent_files: bool = False


class PreferencesUpdate(BaseModel):
    hide_recent_activity: Optional[bool] = None
    hide_recent_files: Optional[bool] = None


# =============================================================================
# Admin Models
# =============================================================================

class RoleUpdate(BaseModel):
    """Schema for changing another profile's role."""
    role: RoleName

    @field_validator('role', mode='before')
    @classmethod
    def role_valid(cls, v):
        if isinstance(v, str):
            v = v.strip().lower()
        if v not in ALL_ROLES:
            raise ValueError(f"Role must be one of {list(ALL_ROLES)}")
        return v


class AdminStats(BaseModel):
    """Row counts shown on the admin page."""
    total_users: int
    total_files: int
    total_posts: int
    total_notifications: int
    users_by_role: dict


# =============================================================================
# Category Models
# =============================================================================

class CategoryCreate(BaseModel):
    """Schema for creating a folder."""
    name: str = Field(..., min_length=1, max_length=MAX_NAME_LENGTH)
    description: Optional[str] = Field(None, max_length=MAX_DESCRIPTION_LENGTH)
    parent_id: Optional[str] = None
    admin_only: bool = False


class CategoryUpdate(BaseModel):
    """
    Partial folder update.

    Sending "parent_id": null moves the folder to the root; omitting the
    field leaves the parent unchanged.
    """
    name: Optional[str] = Field(None, min_length=1, max_length=MAX_NAME_LENGTH)
    description: Optional[str] = Field(None, max_length=MAX_DESCRIPTION_LENGTH)
    parent_id: Optional[str] = None
    admin_only: Optional[bool] = None


class Category(BaseModel):
    """Folder as returned by the API."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: Optional[str] = None
    created_by: Optional[str] = None
    parent_id: Optional[str] = None
    admin_only: bool
    created_at: datetime
    updated_at: datetime


class Breadcrumb(BaseModel):
    """One step of a root-first folder path."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str


# =============================================================================
# File Models
# =============================================================================

class FileUpload(BaseModel):
    """Schema for uploading a file encoded as base64 bytes."""
    filename: str = Field(..., min_length=1)
    content: str  # base64 encoded
    content_type: Optional[str] = None
    name: Optional[str] = Field(None, max_length=MAX_NAME_LENGTH)
    description: Optional[str] = Field(None, max_length=MAX_DESCRIPTION_LENGTH)
    category_id: Optional[str] = None


class FileUpdate(BaseModel):
    """
    Partial file metadata update.

    Sending "category_id": null moves the file out of any folder.
    """
    name: Optional[str] = Field(None, min_length=1, max_length=MAX_NAME_LENGTH)
    description: Optional[str] = Field(None, max_length=MAX_DESCRIPTION_LENGTH)
    category_id: Optional[str] = None


class FileRecord(BaseModel):
    """File metadata row."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: Optional[str] = None
    file_path: str
    file_size: int
    file_type: str
    category_id: Optional[str] = None
    uploaded_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class FolderView(BaseModel):
    """Contents of one folder for the file browser."""
    current_folder: Optional[Category] = None
    breadcrumbs: List[Breadcrumb] = []
    folders: List[Category] = []
    files: List[FileRecord] = []


class SignedDownload(BaseModel):
    """Time-limited download link for a file."""
    url: str
    name: str
    expires_in: int


class FilePreview(BaseModel):
    """Signed URL plus the kind of inline preview the client should render."""
    url: str
    name: str
    file_type: str
    kind: PreviewKind
    expires_in: int


# =============================================================================
# Message (Post) Models
# =============================================================================

class PostCreate(BaseModel):
    """Schema for creating a message or announcement."""
    title: str = Field(..., min_length=1, max_length=MAX_TITLE_LENGTH)
    content: str = Field(..., min_length=1, max_length=MAX_POST_CONTENT_LENGTH)
    is_admin_post: bool = False
    referenced_file_id: Optional[str] = None
    referenced_category_id: Optional[str] = None


class PostUpdate(BaseModel):
    """Partial message update. Explicit nulls clear references."""
    title: Optional[str] = Field(None, min_length=1, max_length=MAX_TITLE_LENGTH)
    content: Optional[str] = Field(None, min_length=1, max_length=MAX_POST_CONTENT_LENGTH)
    referenced_file_id: Optional[str] = None
    referenced_category_id: Optional[str] = None


class Post(BaseModel):
    """Message as returned by the API."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    content: str
    author_id: Optional[str] = None
    is_admin_post: bool
    referenced_file_id: Optional[str] = None
    referenced_category_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class CanModify(BaseModel):
    can_modify: bool


# =============================================================================
# Comment Models
# =============================================================================

class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=MAX_COMMENT_LENGTH)
    referenced_file_id: Optional[str] = None
    referenced_category_id: Optional[str] = None


class CommentUpdate(BaseModel):
    content: Optional[str] = Field(None, min_length=1, max_length=MAX_COMMENT_LENGTH)
    referenced_file_id: Optional[str] = None
    referenced_category_id: Optional[str] = None


class Comment(BaseModel):
    """Comment as returned by the API."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    post_id: str
    user_id: str
    content: str
    referenced_file_id: Optional[str] = None
    referenced_category_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class CommentCount(BaseModel):
    post_id: str
    count: int


# =============================================================================
# Notification Models
# =============================================================================

class Notification(BaseModel):
    """Notification as returned by the API."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    content: str
    type: str
    is_read: bool
    related_id: Optional[str] = None
    created_at: datetime


class UnreadCount(BaseModel):
    count: int


class BulkResult(BaseModel):
    """Number of rows touched by a bulk operation."""
    affected: int


# =============================================================================
# Dashboard Models
# =============================================================================

class DashboardStats(BaseModel):
    total_files: int
    uploads_today: int
    total_messages: int
    total_users: int


class Dashboard(BaseModel):
    """
    Landing-page summary.

    recent_files / recent_posts are None when the caller's preferences hide
    them, so clients can tell "hidden" apart from "empty".
    """
    stats: DashboardStats
    recent_files: Optional[List[FileRecord]] = None
    recent_posts: Optional[List[Post]] = None
    preferences: Preferences
