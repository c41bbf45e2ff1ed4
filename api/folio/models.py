from __future__ import annotations

import uuid

from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    func,
)

from .db import Base
from .settings import WORKS_TABLE


def new_uuid() -> str:
    return str(uuid.uuid4())


# ============================================================================
# IDENTITY & PROFILE
# ============================================================================


class IdentityMirror(Base):
    """Local mirror of the authentication provider's user record."""

    __tablename__ = "users"

    id = Column(String(64), primary_key=True)  # provider-assigned
    email = Column(String(255), nullable=True, index=True)
    full_name = Column(String(200), nullable=True)
    avatar_url = Column(String(1000), nullable=True)
    role = Column(String(50), nullable=True)


class Profile(Base):
    """Application-owned, user-editable profile (at most one per identity)."""

    __tablename__ = "Profile"

    id = Column(String(64), primary_key=True)
    userID = Column(String(64), unique=True, nullable=True, index=True)
    displayName = Column(String(200), nullable=True)
    avatarUrl = Column(String(1000), nullable=True)
    contact = Column(String(100), nullable=True)
    bio = Column(Text, nullable=True)
    updatedAt = Column(DateTime, nullable=True)


# ============================================================================
# WORKS
# ============================================================================


class Work(Base):
    """A draft or published portfolio item."""

    __tablename__ = WORKS_TABLE

    workId = Column(String(36), primary_key=True, default=new_uuid)
    authorId = Column(String(64), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="draft", index=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now(), index=True)
    updatedAt = Column(DateTime, nullable=True)
    publishedAt = Column(DateTime, nullable=True, index=True)  # set iff published
    views = Column(Integer, nullable=False, default=0)
    likes = Column(Integer, nullable=False, default=0)


class Tag(Base):
    __tablename__ = "Tag"

    tagId = Column(String(36), primary_key=True, default=new_uuid)
    name = Column(String(100), unique=True, nullable=False)


class WorkTag(Base):
    """Many-to-many link between works and tags. No cascades."""

    __tablename__ = "worktag"

    workId = Column(String(36), primary_key=True)
    tagId = Column(String(36), primary_key=True)


class Media(Base):
    """Image attached to a work. The first row by creation order is the thumbnail."""

    __tablename__ = "Media"

    id = Column(Integer, primary_key=True, autoincrement=True)
    workId = Column(String(36), ForeignKey(f"{WORKS_TABLE}.workId"), nullable=False, index=True)
    fileurl = Column(String(1000), nullable=False)
    filetype = Column(String(100), nullable=True)
    sizemb = Column(BigInteger, nullable=True)  # whole megabytes, rounded up
    alttext = Column(Text, nullable=True)
    createdAt = Column(DateTime, nullable=False, server_default=func.now(), index=True)
