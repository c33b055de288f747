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

import logging
from typing import Any, Dict, List, Optional

from bson.errors import InvalidDocument
from pymongo import DESCENDING, ReturnDocument
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError, PyMongoError

from app.models.common import utcnow

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """A database operation failed."""


class SlugConflictError(StorageError):
    """The unique slug index rejected an insert."""


class StoryStore:
    """Thin wrapper around the stories collection. Every method touches a single document or query."""

    def __init__(self, collection: Collection):
        self.collection = collection

    def insert(self, document: Dict[str, Any]) -> Dict[str, Any]:
        """Inserts a story document and returns it with its `_id`."""
        try:
            result = self.collection.insert_one(document)
        except DuplicateKeyError as e:
            logger.warning(f"Slug '{document.get('slug')}' already exists: {e}")
            raise SlugConflictError(f"Slug '{document.get('slug')}' đã tồn tại") from e
        except PyMongoError as e:
            logger.error(f"Error inserting story '{document.get('slug')}': {e}", exc_info=True)
            raise StorageError(str(e)) from e
        stored = dict(document)
        stored["_id"] = result.inserted_id
        return stored

    def slug_exists(self, slug: str) -> bool:
        try:
            return self.collection.count_documents({"slug": slug}, limit=1) > 0
        except PyMongoError as e:
            logger.error(f"Error checking slug '{slug}': {e}", exc_info=True)
            raise StorageError(str(e)) from e

    def find_by_slug(self, slug: str) -> Optional[Dict[str, Any]]:
        try:
            return self.collection.find_one({"slug": slug})
        except PyMongoError as e:
            logger.error(f"Error reading story '{slug}': {e}", exc_info=True)
            raise StorageError(str(e)) from e

    def find_page(self, query: Dict[str, Any], skip: int, limit: int,
                  projection: Optional[List[str]] = None) -> List[Dict[str, Any]]:
        """Most recently updated first."""
        try:
            cursor = (
                self.collection.find(query, projection)
                .sort("updatedAt", DESCENDING)
                .skip(skip)
                .limit(limit)
            )
            return list(cursor)
        except PyMongoError as e:
            logger.error(f"Error listing stories for query {query}: {e}", exc_info=True)
            raise StorageError(str(e)) from e

    def count(self, query: Dict[str, Any]) -> int:
        try:
            return self.collection.count_documents(query)
        except PyMongoError as e:
            logger.error(f"Error counting stories for query {query}: {e}", exc_info=True)
            raise StorageError(str(e)) from e

    def increment_views(self, slug: str) -> Optional[Dict[str, Any]]:
        """Adds one view, refreshes updatedAt and returns the updated story (None if missing)."""
        try:
            return self.collection.find_one_and_update(
                {"slug": slug},
                {"$inc": {"views": 1}, "$set": {"updatedAt": utcnow()}},
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            logger.error(f"Error incrementing views for '{slug}': {e}", exc_info=True)
            raise StorageError(str(e)) from e

    def push_chapter(self, slug: str, chapter: Dict[str, Any]) -> bool:
        """
        Appends a chapter unless the story already has one with the same number.

        Returns:
            False when no story matched, i.e. the slug is gone or the number is taken.
        """
        try:
            result = self.collection.update_one(
                {"slug": slug, "chapters.number": {"$ne": chapter["number"]}},
                {"$push": {"chapters": chapter}, "$set": {"updatedAt": utcnow()}},
            )
        except (PyMongoError, InvalidDocument, OverflowError) as e:
            logger.error(f"Error appending chapter {chapter.get('number')} to '{slug}': {e}", exc_info=True)
            raise StorageError(str(e)) from e
        return result.matched_count == 1

    def delete_by_slug(self, slug: str) -> Optional[Dict[str, Any]]:
        """Deletes the story (chapters included) and returns the removed document, or None."""
        try:
            return self.collection.find_one_and_delete({"slug": slug})
        except PyMongoError as e:
            logger.error(f"Error deleting story '{slug}': {e}", exc_info=True)
            raise StorageError(str(e)) from e
