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

from fastapi import APIRouter, Body, Depends, Path, Query, status
from typing import Optional
import logging

from app.api.deps import get_story_service
from app.core.security import require_admin_key
from app.models.common import Message
from app.models.story import ChapterCreate, StoryCreate, StoryCreated, StoryList, StoryRead
from app.services.story_service import StoryService

router = APIRouter()
logger = logging.getLogger(__name__)

# --- Public Endpoints ---

@router.get(
    "",
    response_model=StoryList,
    summary="List Stories",
    description="Lists stories, most recently updated first, 24 per page."
)
def list_stories(
    search: Optional[str] = Query(None, description="Case-insensitive substring of the title."),
    genre: Optional[str] = Query(None, description="Only stories tagged with this genre."),
    page: int = Query(1, description="1-based page number."),
    story_service: StoryService = Depends(get_story_service),
):
    return story_service.list_stories(search=search, genre=genre, page=page)


@router.get(
    "/{slug}",
    response_model=StoryRead,
    summary="Get Story",
    description="Returns the full story with all chapters. Each call counts as one view."
)
def get_story(
    slug: str = Path(...),
    story_service: StoryService = Depends(get_story_service),
):
    """
    Gets a story by slug.
    Raises 404 if no story has this slug.
    """
    return story_service.get_detail(slug)

# --- Admin Endpoints ---

@router.post(
    "",
    response_model=StoryCreated,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin_key)],
    summary="Create Story",
    description="Creates a story. Requires the x-api-key header."
)
def create_story(
    story_in: Optional[StoryCreate] = Body(None),
    story_service: StoryService = Depends(get_story_service),
):
    """
    Creates a new story; the slug is derived from the title.

    - **story_in**: title (required; a missing body is reported as a missing title), author, cover, description, genres.
    """
    return story_service.create(story_in or StoryCreate())


@router.post(
    "/{slug}/chapter",
    response_model=Message,
    dependencies=[Depends(require_admin_key)],
    summary="Add Chapter",
    description="Appends a chapter to a story. Requires the x-api-key header."
)
def add_chapter(
    slug: str = Path(...),
    chapter_in: ChapterCreate = Body(...),
    story_service: StoryService = Depends(get_story_service),
):
    """
    Appends a chapter.
    Raises 404 if the story is not found, 400 if the chapter number already exists.

    - **chapter_in**: number, type ("text" or "comic"), data (HTML text or image URLs), optional title.
    """
    return story_service.add_chapter(slug, chapter_in)


@router.delete(
    "/{slug}",
    response_model=Message,
    dependencies=[Depends(require_admin_key)],
    summary="Delete Story",
    description="Deletes a story and all its chapters. This action is irreversible."
)
def delete_story(
    slug: str = Path(...),
    story_service: StoryService = Depends(get_story_service),
):
    return story_service.delete(slug)
