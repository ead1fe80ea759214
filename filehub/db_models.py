"""
SQLAlchemy database models.

Maps application domain models to PostgreSQL tables.
Separate from Pydantic models (models.py) which handle API validation.
"""

import uuid
from sqlalchemy import Column, BigInteger, String, Text, DateTime, ForeignKey, Boolean, Index
from sqlalchemy.orm import relationship, declarative_base
from datetime import datetime

from .constants import ROLE_USER

Base = declarative_base()


def new_id() -> str:
    return str(uuid.uuid4())


class DBProfile(Base):
    """User account and application-level identity."""
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, default=new_id)
    email = Column(String(320), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)
    full_name = Column(String(255), nullable=True)
    avatar_url = Column(String(2048), nullable=True)
    role = Column(String(20), nullable=False, default=ROLE_USER, index=True)  # user, core_admin, superadmin
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    last_sign_in_at = Column(DateTime, nullable=True)

    # Relationships
    notifications = relationship("DBNotification", back_populates="user", cascade="all, delete-orphan")
    preferences = relationship("DBUserPreference", back_populates="user", uselist=False, cascade="all, delete-orphan")

    def __repr__(self):
        return f"<DBProfile(id='{self.id}', email='{self.email}', role='{self.role}')>"


class DBCategory(Base):
    """Folder node; parent_id forms the folder tree."""
    __tablename__ = "categories"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)
    created_by = Column(String(36), ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True)
    parent_id = Column(String(36), ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True)
    admin_only = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    # Files are detached (category_id nulled), never deleted, when the folder goes
    files = relationship("DBFile", back_populates="category")
    creator = relationship("DBProfile", foreign_keys=[created_by])

    def __repr__(self):
        return f"<DBCategory(id='{self.id}', name='{self.name}', parent='{self.parent_id}')>"


class DBFile(Base):
    """Metadata row for an object stored in the files bucket."""
    __tablename__ = "files"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)
    file_path = Column(String(1024), nullable=False)  # Opaque storage path
    file_size = Column(BigInteger, nullable=False)
    file_type = Column(String(255), nullable=False)  # MIME type
    category_id = Column(String(36), ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True)
    uploaded_by = Column(String(36), ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    category = relationship("DBCategory", back_populates="files")
    uploader = relationship("DBProfile", foreign_keys=[uploaded_by])

    __table_args__ = (
        Index('idx_file_category_created', 'category_id', 'created_at'),
    )

    def __repr__(self):
        return f"<DBFile(id='{self.id}', name='{self.name}', category='{self.category_id}')>"


class DBPost(Base):
    """Message or announcement."""
    __tablename__ = "posts"

    id = Column(String(36), primary_key=True, default=new_id)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    author_id = Column(String(36), ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True, index=True)
    is_admin_post = Column(Boolean, default=False, nullable=False, index=True)
    referenced_file_id = Column(String(36), ForeignKey("files.id", ondelete="SET NULL"), nullable=True)
    referenced_category_id = Column(String(36), ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    author = relationship("DBProfile", foreign_keys=[author_id])
    comments = relationship("DBComment", back_populates="post", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<DBPost(id='{self.id}', title='{self.title}', admin={self.is_admin_post})>"


class DBComment(Base):
    """Comment attached to a post."""
    __tablename__ = "comments"

    id = Column(String(36), primary_key=True, default=new_id)
    post_id = Column(String(36), ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    referenced_file_id = Column(String(36), ForeignKey("files.id", ondelete="SET NULL"), nullable=True)
    referenced_category_id = Column(String(36), ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    post = relationship("DBPost", back_populates="comments")
    author = relationship("DBProfile", foreign_keys=[user_id])

    __table_args__ = (
        Index('idx_comment_post_created', 'post_id', 'created_at'),
    )

    def __repr__(self):
        return f"<DBComment(id='{self.id}', post='{self.post_id}', user='{self.user_id}')>"


class DBNotification(Base):
    """Per-user notification; related_id points at a file or post."""
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    type = Column(String(50), nullable=False, index=True)  # file_upload, admin_post, file_reference, comment
    is_read = Column(Boolean, default=False, nullable=False)
    related_id = Column(String(36), nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    # Relationships
    user = relationship("DBProfile", back_populates="notifications")

    __table_args__ = (
        Index('idx_notification_user_read', 'user_id', 'is_read'),
    )

    def __repr__(self):
        return f"<DBNotification(id='{self.id}', user='{self.user_id}', type='{self.type}', read={self.is_read})>"


class DBUserPreference(Base):
    """Dashboard display preferences, one row per profile."""
    __tablename__ = "user_preferences"

    user_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True)
    hide_recent_activity = Column(Boolean, default=False, nullable=False)
    hide_recent_files = Column(Boolean, default=False, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    user = relationship("DBProfile", back_populates="preferences")

    def __repr__(self):
        return f"<DBUserPreference(user='{self.user_id}')>"
