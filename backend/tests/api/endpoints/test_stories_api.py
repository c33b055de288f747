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

import inspect
import pytest
from fastapi.testclient import TestClient
from unittest.mock import MagicMock
from fastapi import HTTPException, status
from fastapi.routing import APIRoute

from app.main import create_app
from app.api.deps import get_story_service
from app.services.story_service import StoryService
from app.models.common import Message
from app.models.story import StoryList, StoryRead, StorySummary, StoryCreated, StoryCreate, ChapterCreate

SLUG = "kiem-hiep-truyen"
STORY_ID = "65a1b2c3d4e5f6a7b8c9d0e1"


@pytest.fixture
def client_and_service(test_settings):
    app = create_app(test_settings)
    mock_story_service = MagicMock(spec=StoryService)
    app.dependency_overrides[get_story_service] = lambda: mock_story_service
    yield TestClient(app), mock_story_service
    app.dependency_overrides.clear()


def make_story_read(**overrides) -> StoryRead:
    data = {"_id": STORY_ID, "title": "Kiếm Hiệp Truyện", "slug": SLUG}
    data.update(overrides)
    return StoryRead(**data)

# --- List Stories ---

def test_list_stories(client_and_service):
    client, mock_story_service = client_and_service
    summary = StorySummary(_id=STORY_ID, title="Kiếm Hiệp Truyện", slug=SLUG, views=3)
    mock_story_service.list_stories.return_value = StoryList(stories=[summary], total=1, page=1, hasMore=False)

    response = client.get("/api/stories")

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["total"] == 1
    assert data["page"] == 1
    assert data["hasMore"] is False
    assert data["stories"][0]["_id"] == STORY_ID
    assert data["stories"][0]["slug"] == SLUG
    assert data["stories"][0]["views"] == 3
    mock_story_service.list_stories.assert_called_once_with(search=None, genre=None, page=1)

def test_list_stories_passes_query_params(client_and_service):
    client, mock_story_service = client_and_service
    mock_story_service.list_stories.return_value = StoryList(stories=[], total=0, page=2, hasMore=False)

    response = client.get("/api/stories", params={"search": "kiếm", "genre": "Tiên Hiệp", "page": "2"})

    assert response.status_code == status.HTTP_200_OK
    mock_story_service.list_stories.assert_called_once_with(search="kiếm", genre="Tiên Hiệp", page=2)

def test_list_stories_invalid_page_is_400(client_and_service):
    client, mock_story_service = client_and_service

    response = client.get("/api/stories", params={"page": "abc"})

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "page" in response.json()["message"]
    mock_story_service.list_stories.assert_not_called()

# --- Get Story ---

def test_get_story(client_and_service):
    client, mock_story_service = client_and_service
    mock_story_service.get_detail.return_value = make_story_read(views=1)

    response = client.get(f"/api/stories/{SLUG}")

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["views"] == 1
    assert response.json()["chapters"] == []
    mock_story_service.get_detail.assert_called_once_with(SLUG)

def test_get_story_not_found_uses_message_field(client_and_service):
    client, mock_story_service = client_and_service
    mock_story_service.get_detail.side_effect = HTTPException(status_code=404, detail="Không tìm thấy truyện")

    response = client.get("/api/stories/missing")

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json() == {"message": "Không tìm thấy truyện"}

# --- Create Story ---

def test_create_story(client_and_service, admin_headers):
    client, mock_story_service = client_and_service
    mock_story_service.create.return_value = StoryCreated(message="Thêm truyện thành công!", story=make_story_read())

    response = client.post("/api/stories", json={"title": "Kiếm Hiệp Truyện", "genres": "a,b"}, headers=admin_headers)

    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["message"] == "Thêm truyện thành công!"
    assert data["story"]["slug"] == SLUG
    story_in = mock_story_service.create.call_args.args[0]
    assert isinstance(story_in, StoryCreate)
    assert story_in.genres == "a,b"

@pytest.mark.parametrize("headers", [{}, {"x-api-key": "wrong"}, {"x-api-key": "TEST-ADMIN-KEY"}])
def test_create_story_unauthorized(client_and_service, headers):
    client, mock_story_service = client_and_service

    response = client.post("/api/stories", json={"title": "X"}, headers=headers)

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json() == {"message": "Unauthorized: Invalid API Key"}
    mock_story_service.create.assert_not_called()

def test_create_story_header_name_is_case_insensitive(client_and_service, admin_headers):
    client, mock_story_service = client_and_service
    mock_story_service.create.return_value = StoryCreated(message="ok", story=make_story_read())

    response = client.post("/api/stories", json={"title": "X"}, headers={"X-API-Key": admin_headers["x-api-key"]})

    assert response.status_code == status.HTTP_201_CREATED

def test_create_story_missing_title(client_and_service, admin_headers):
    client, mock_story_service = client_and_service
    mock_story_service.create.side_effect = HTTPException(status_code=400, detail="Thiếu tên truyện")

    response = client.post("/api/stories", json={}, headers=admin_headers)

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {"message": "Thiếu tên truyện"}

def test_create_story_without_body_reports_missing_title(client_and_service, admin_headers):
    client, mock_story_service = client_and_service
    mock_story_service.create.side_effect = HTTPException(status_code=400, detail="Thiếu tên truyện")

    response = client.post("/api/stories", headers=admin_headers)

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {"message": "Thiếu tên truyện"}
    mock_story_service.create.assert_called_once_with(StoryCreate())

# --- Add Chapter ---

def test_add_chapter(client_and_service, admin_headers):
    client, mock_story_service = client_and_service
    mock_story_service.add_chapter.return_value = Message(message="Thêm chương 1 thành công!")
    payload = {"number": "1", "type": "comic", "data": ["https://x/1.jpg"]}

    response = client.post(f"/api/stories/{SLUG}/chapter", json=payload, headers=admin_headers)

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"message": "Thêm chương 1 thành công!"}
    slug, chapter_in = mock_story_service.add_chapter.call_args.args
    assert slug == SLUG
    assert isinstance(chapter_in, ChapterCreate)
    assert chapter_in.number == 1 # numeric strings are accepted
    assert chapter_in.data == ["https://x/1.jpg"]

def test_add_chapter_fractional_number_is_400(client_and_service, admin_headers):
    client, mock_story_service = client_and_service

    response = client.post(f"/api/stories/{SLUG}/chapter",
                           json={"number": 1.5, "type": "text", "data": "x"}, headers=admin_headers)

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "message" in response.json()
    mock_story_service.add_chapter.assert_not_called()

def test_add_chapter_unauthorized(client_and_service):
    client, mock_story_service = client_and_service

    response = client.post(f"/api/stories/{SLUG}/chapter", json={"number": 1, "type": "text", "data": "x"})

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    mock_story_service.add_chapter.assert_not_called()

# --- Delete Story ---

def test_delete_story(client_and_service, admin_headers):
    client, mock_story_service = client_and_service
    mock_story_service.delete.return_value = Message(message="Đã xóa truyện thành công!")

    response = client.delete(f"/api/stories/{SLUG}", headers=admin_headers)

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"message": "Đã xóa truyện thành công!"}
    mock_story_service.delete.assert_called_once_with(SLUG)

def test_delete_story_not_found(client_and_service, admin_headers):
    client, mock_story_service = client_and_service
    mock_story_service.delete.side_effect = HTTPException(status_code=404, detail="Không tìm thấy truyện")

    response = client.delete("/api/stories/missing", headers=admin_headers)

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json() == {"message": "Không tìm thấy truyện"}

def test_delete_story_unauthorized(client_and_service):
    client, mock_story_service = client_and_service

    response = client.delete(f"/api/stories/{SLUG}")

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    mock_story_service.delete.assert_not_called()

# --- Handlers run in the threadpool (the store is blocking pymongo) ---

def test_story_handlers_are_sync(test_settings):
    app = create_app(test_settings)
    story_routes = [r for r in app.routes if isinstance(r, APIRoute) and r.path.startswith("/api/stories")]

    assert len(story_routes) == 5
    for route in story_routes:
        assert not inspect.iscoroutinefunction(route.endpoint), route.name
