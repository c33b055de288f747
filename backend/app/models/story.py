# Copyright 2025 Antimortine
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .common import Message, utcnow

DEFAULT_AUTHOR = "Đang cập nhật"
CHAPTER_TYPES = ("text", "comic")
# Chapter numbers are stored as BSON int64
MAX_CHAPTER_NUMBER = 2**63 - 1


def is_http_url(value: str) -> bool:
    return value.startswith("http") # also covers https


# --- Stored documents (what goes into the stories collection) ---

class ChapterDocument(BaseModel):
    number: int = Field(..., ge=1, le=MAX_CHAPTER_NUMBER)
    title: str = Field(..., min_length=1)
    images: List[str] = []
    content: str = ""
    createdAt: datetime = Field(default_factory=utcnow)

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Tên chương không được để trống")
        return v

    @field_validator("images")
    @classmethod
    def check_images(cls, v: List[str]) -> List[str]:
        images = [img.strip() for img in v]
        for img in images:
            if not is_http_url(img):
                raise ValueError("URL ảnh không hợp lệ")
        return images


class StoryDocument(BaseModel):
    title: str = Field(..., max_length=200)
    author: str = Field(DEFAULT_AUTHOR, max_length=100)
    cover: str = ""
    description: str = Field("", max_length=2000)
    genres: List[str] = []
    slug: str = Field(..., min_length=1)
    chapters: List[ChapterDocument] = []
    views: int = Field(0, ge=0)
    createdAt: datetime = Field(default_factory=utcnow)
    updatedAt: datetime = Field(default_factory=utcnow)

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Thiếu tên truyện")
        return v

    @field_validator("author")
    @classmethod
    def strip_author(cls, v: str) -> str:
        return v.strip()

    @field_validator("cover")
    @classmethod
    def check_cover(cls, v: str) -> str:
        if v != "" and not is_http_url(v):
            raise ValueError("URL cover phải bắt đầu bằng http/https")
        return v

    @field_validator("genres")
    @classmethod
    def check_genres(cls, v: List[str]) -> List[str]:
        genres = [g.strip() for g in v]
        for g in genres:
            if len(g) > 50:
                raise ValueError(f"Thể loại '{g[:20]}...' dài quá 50 ký tự")
        return genres

    @field_validator("slug")
    @classmethod
    def lower_slug(cls, v: str) -> str:
        return v.lower()


# --- Request bodies ---
# Loose on purpose: missing fields are reported by the service with its own messages.

class StoryCreate(BaseModel):
    title: Optional[str] = None
    author: Optional[str] = None
    cover: Optional[str] = None
    description: Optional[str] = None
    # Either a list of tags or a comma-separated string
    genres: Union[List[str], str, None] = None


class ChapterCreate(BaseModel):
    number: Optional[int] = None
    title: Optional[str] = None
    type: Optional[str] = None
    # Image URLs for comic chapters, HTML text otherwise
    data: Union[List[str], str, None] = None


# --- Responses ---

class ChapterRead(BaseModel):
    number: int
    title: str
    images: List[str] = []
    content: str = ""
    createdAt: Optional[datetime] = None


class StorySummary(BaseModel):
    """Projected story used by the list endpoint."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., alias="_id")
    title: str
    slug: str
    author: str = DEFAULT_AUTHOR
    cover: str = ""
    genres: List[str] = []
    views: int = 0
    chapters: List[ChapterRead] = []
    updatedAt: Optional[datetime] = None

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, v):
        return str(v)


class StoryRead(StorySummary):
    description: str = ""
    createdAt: Optional[datetime] = None


class StoryList(BaseModel):
    stories: List[StorySummary] = []
    total: int
    page: int
    hasMore: bool


class StoryCreated(Message):
    story: StoryRead
