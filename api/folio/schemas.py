from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


# ============================================================================
# AUTH SCHEMAS
# ============================================================================


class RegisterRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=6, max_length=200)
    full_name: str | None = Field(None, max_length=100)


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1, max_length=200)


class ProfileUpdateRequest(BaseModel):
    """Profile edit. Legacy field names are accepted alongside current ones."""

    displayName: str | None = Field(None, max_length=100)
    full_name: str | None = Field(None, max_length=100)
    contact: str | None = Field(None, max_length=20)
    phone: str | None = Field(None, max_length=20)
    bio: str | None = Field(None, max_length=500)
    about: str | None = Field(None, max_length=500)
    avatarUrl: str | None = None
    avatar_url: str | None = None
    avatar: str | None = None  # data URL of a new avatar image


class MessageResponse(BaseModel):
    message: str


# ============================================================================
# WORK SCHEMAS
# ============================================================================


class ImagePayload(BaseModel):
    dataUrl: str  # e.g. data:image/png;base64,....
    alttext: str | None = None


class CreateWorkRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=4000)
    status: Literal["draft", "published"] | None = None
    tagIds: list[str] | None = None  # existing tag ids to link
    newTags: list[str] | None = None  # tag names to create (or reuse) and link
    images: list[ImagePayload] | None = None  # first image is the thumbnail


class TagItem(BaseModel):
    tagId: str
    name: str
