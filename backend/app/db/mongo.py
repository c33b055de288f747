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
from typing import Optional

from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import ConfigurationError

logger = logging.getLogger(__name__)

STORIES_COLLECTION = "stories"
DEFAULT_DB_NAME = "truyen"


class MongoConnection:
    """Owns the MongoClient for the lifetime of the app."""

    def __init__(self, uri: str, db_name: Optional[str] = None, client: Optional[MongoClient] = None):
        self.uri = uri
        self._db_name = db_name
        self._client = client
        self._db: Optional[Database] = None

    def connect(self) -> Database:
        """
        Opens the client, pings the server and ensures indexes.
        Any failure propagates; callers treat it as fatal.
        """
        if self._client is None:
            self._client = MongoClient(self.uri, serverSelectionTimeoutMS=10000, tz_aware=True)
        self._client.admin.command("ping")
        self._db = self._client[self._resolve_db_name()]
        logger.info(f"Connected to MongoDB database '{self._db.name}'")
        self.ensure_indexes()
        return self._db

    def _resolve_db_name(self) -> str:
        if self._db_name:
            return self._db_name
        try:
            return self._client.get_default_database().name
        except ConfigurationError:
            # URI names no database
            return DEFAULT_DB_NAME

    @property
    def db(self) -> Database:
        if self._db is None:
            raise RuntimeError("MongoConnection.connect() has not been called")
        return self._db

    @property
    def stories(self) -> Collection:
        return self.db[STORIES_COLLECTION]

    def ensure_indexes(self):
        stories = self.stories
        # The unique slug index is what actually guarantees slug uniqueness
        stories.create_index([("slug", ASCENDING)], unique=True, name="slug_unique")
        stories.create_index([("chapters.number", ASCENDING)], name="chapters_number")
        stories.create_index([("genres", ASCENDING)], name="genres")
        stories.create_index([("updatedAt", DESCENDING)], name="updated_at_desc")
        logger.debug("Story indexes ensured")

    def close(self):
        if self._client is not None:
            self._client.close()
            logger.info("MongoDB connection closed")
        self._client = None
        self._db = None
