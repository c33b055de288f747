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

import re
import logging
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status
from pydantic import ValidationError

from app.models.common import Message, format_validation_errors, utcnow
from app.models.story import (
    CHAPTER_TYPES, DEFAULT_AUTHOR, MAX_CHAPTER_NUMBER, ChapterCreate, ChapterDocument, StoryCreate,
    StoryCreated, StoryDocument, StoryList, StoryRead, StorySummary,
)
from app.services.sanitizer import sanitize_chapter_content, sanitize_text
from app.services.slug import create_unique_slug
from app.services.story_store import SlugConflictError, StorageError, StoryStore

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 24
LIST_PROJECTION = ["title", "slug", "author", "cover", "genres", "views", "chapters", "updatedAt"]

STORY_NOT_FOUND = "Không tìm thấy truyện"
MISSING_TITLE = "Thiếu tên truyện"
MISSING_CHAPTER_INFO = "Thiếu thông tin chương"


def _split_genres(genres) -> List[str]:
    if not genres:
        return []
    items = genres if isinstance(genres, list) else genres.split(",")
    cleaned = [sanitize_text(g.strip()) for g in items]
    return [g for g in cleaned if g]


class StoryService:

    def __init__(self, store: StoryStore, page_size: int = DEFAULT_PAGE_SIZE):
        self.store = store
        self.page_size = page_size

    def list_stories(self, search: Optional[str] = None, genre: Optional[str] = None, page: int = 1) -> StoryList:
        """Lists one page of stories, most recently updated first."""
        if page < 1:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Số trang phải lớn hơn hoặc bằng 1")

        query: Dict[str, Any] = {}
        if search and search.strip():
            # Substring match, so user input is escaped rather than used as a pattern
            query["title"] = {"$regex": re.escape(search.strip()), "$options": "i"}
        if genre:
            query["genres"] = {"$in": [genre]}

        logger.debug(f"Listing stories: query={query}, page={page}")
        try:
            docs = self.store.find_page(query, skip=(page - 1) * self.page_size,
                                        limit=self.page_size, projection=LIST_PROJECTION)
            total = self.store.count(query)
        except StorageError as e:
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))

        return StoryList(
            stories=[StorySummary(**doc) for doc in docs],
            total=total,
            page=page,
            hasMore=page * self.page_size < total,
        )

    def get_detail(self, slug: str) -> StoryRead:
        """Returns the full story and counts the read (views + 1, updatedAt refreshed)."""
        try:
            doc = self.store.increment_views(slug)
        except StorageError as e:
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
        if doc is None:
            logger.info(f"Story '{slug}' not found")
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=STORY_NOT_FOUND)
        return StoryRead(**doc)

    def create(self, story_in: StoryCreate) -> StoryCreated:
        """Creates a story with a unique slug derived from its title."""
        if not story_in.title or not story_in.title.strip():
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=MISSING_TITLE)

        title = sanitize_text(story_in.title.strip())
        author = sanitize_text((story_in.author if story_in.author is not None else DEFAULT_AUTHOR).strip())
        description = sanitize_text(story_in.description or "")
        cover = (story_in.cover or "").strip()
        genres = _split_genres(story_in.genres)

        try:
            slug = create_unique_slug(self.store, title)
            now = utcnow()
            document = StoryDocument(
                title=title, author=author, cover=cover,
                description=description, genres=genres, slug=slug,
                createdAt=now, updatedAt=now,
            )
            stored = self.store.insert(document.model_dump())
        except ValidationError as e:
            message = format_validation_errors(e.errors())
            logger.warning(f"Rejected story '{title}': {message}")
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)
        except SlugConflictError as e:
            # Another request took the slug between the check and the insert
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
        except StorageError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

        logger.info(f"Story '{title}' created with slug '{slug}'")
        return StoryCreated(message="Thêm truyện thành công!", story=StoryRead(**stored))

    def _build_chapter(self, chapter_in: ChapterCreate) -> ChapterDocument:
        number = chapter_in.number
        title = sanitize_text(chapter_in.title or f"Chương {number}")

        if chapter_in.type == "comic":
            if not isinstance(chapter_in.data, list):
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Chương truyện tranh cần danh sách URL ảnh")
            images = [img.strip() for img in chapter_in.data if img.strip()]
            content = ""
        else:
            if not isinstance(chapter_in.data, str):
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Nội dung chương phải là văn bản")
            images = []
            content = sanitize_chapter_content(chapter_in.data)

        try:
            return ChapterDocument(number=number, title=title, images=images, content=content)
        except ValidationError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=format_validation_errors(e.errors()))

    def add_chapter(self, slug: str, chapter_in: ChapterCreate) -> Message:
        """Appends a chapter to a story. Chapter numbers are unique per story."""
        if not chapter_in.number or not chapter_in.type or chapter_in.data is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=MISSING_CHAPTER_INFO)
        number = chapter_in.number
        if number < 1 or number > MAX_CHAPTER_NUMBER:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Số chương phải là số nguyên dương")
        if chapter_in.type not in CHAPTER_TYPES:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST,
                                detail=f"Loại chương phải là một trong: {', '.join(CHAPTER_TYPES)}")

        try:
            story = self.store.find_by_slug(slug)
        except StorageError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
        if story is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=STORY_NOT_FOUND)

        duplicate = HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Chương {number} đã tồn tại")
        if any(ch.get("number") == number for ch in story.get("chapters", [])):
            raise duplicate

        chapter = self._build_chapter(chapter_in)
        try:
            appended = self.store.push_chapter(slug, chapter.model_dump())
            # Lost a race: either the number was taken or the story was deleted meanwhile
            story_gone = not appended and self.store.find_by_slug(slug) is None
        except StorageError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
        if story_gone:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=STORY_NOT_FOUND)
        if not appended:
            raise duplicate

        logger.info(f"Chapter {number} ({chapter_in.type}) added to '{slug}'")
        return Message(message=f"Thêm chương {number} thành công!")

    def delete(self, slug: str) -> Message:
        """Deletes a story and all its chapters."""
        try:
            deleted = self.store.delete_by_slug(slug)
        except StorageError as e:
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
        if deleted is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=STORY_NOT_FOUND)
        logger.info(f"Story '{slug}' deleted with {len(deleted.get('chapters', []))} chapters")
        return Message(message="Đã xóa truyện thành công!")
