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

from fastapi import Depends, Request

from app.core.config import Settings
from app.core.security import get_settings
from app.services.story_service import StoryService
from app.services.story_store import StoryStore


def get_story_store(request: Request) -> StoryStore:
    """Store bound to the connection opened in the app lifespan."""
    return StoryStore(request.app.state.mongo.stories)


def get_story_service(
    store: StoryStore = Depends(get_story_store),
    settings: Settings = Depends(get_settings),
) -> StoryService:
    return StoryService(store, page_size=settings.PAGE_SIZE)
