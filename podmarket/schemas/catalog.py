# -*- coding: utf-8 -*-
"""
Catalog schemas for the admin API.
"""
import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from podmarket.services.object_acl import Visibility, normalize_object_path

# smallest charge the processor accepts in the deployment currency (2.00 PLN)
PODCAST_MIN_PRICE = 200
PODCAST_MAX_PRICE = 1_000_000

SLUG_RE = re.compile(r'^[a-z0-9]+(?:-[a-z0-9]+)*$')


def _validate_slug(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.lower()
    if not SLUG_RE.match(v):
        raise ValueError('Slug must contain only lowercase letters, digits and single hyphens')
    return v


def _validate_object_path(v: Optional[str]) -> Optional[str]:
    if v is None or v == "":
        return None
    canonical = normalize_object_path(v)
    if canonical is None:
        raise ValueError('Invalid object path')
    return canonical


class CreateCategoryCommand(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=100)
    slug: str = Field(..., min_length=1, max_length=100)
    icon: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = Field(None, max_length=2000)

    @field_validator('slug')
    @classmethod
    def validate_slug(cls, v):
        return _validate_slug(v)


class CreatePodcastCommand(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    title: str = Field(..., min_length=1, max_length=200)
    slug: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    duration: Optional[int] = Field(None, ge=1, le=24 * 60, description="Duration in minutes")
    price: int = Field(..., ge=PODCAST_MIN_PRICE, le=PODCAST_MAX_PRICE,
                       description="Price in minor currency units")
    category_id: str = Field(..., min_length=1, max_length=36)
    audio_object_path: Optional[str] = Field(None, max_length=512)
    is_active: bool = True

    @field_validator('slug')
    @classmethod
    def validate_slug(cls, v):
        return _validate_slug(v)

    @field_validator('audio_object_path')
    @classmethod
    def validate_audio_object_path(cls, v):
        return _validate_object_path(v)


class UpdatePodcastCommand(BaseModel):
    """Partial update; only the fields present in the request are applied."""
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    slug: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    duration: Optional[int] = Field(None, ge=1, le=24 * 60)
    price: Optional[int] = Field(None, ge=PODCAST_MIN_PRICE, le=PODCAST_MAX_PRICE)
    category_id: Optional[str] = Field(None, min_length=1, max_length=36)
    audio_object_path: Optional[str] = Field(None, max_length=512)
    is_active: Optional[bool] = None

    @field_validator('slug')
    @classmethod
    def validate_slug(cls, v):
        return _validate_slug(v)

    @field_validator('audio_object_path')
    @classmethod
    def validate_audio_object_path(cls, v):
        return _validate_object_path(v)

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


class SetAdminCommand(BaseModel):
    model_config = ConfigDict(extra="forbid")

    is_admin: bool = True


class UploadObjectCommand(BaseModel):
    """Form fields accompanying an audio upload."""
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    visibility: Visibility = Visibility.PRIVATE
    podcast_id: Optional[str] = Field(None, min_length=1, max_length=36,
                                      description="Attach the upload to this podcast")
