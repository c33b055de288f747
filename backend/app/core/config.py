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

from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv
from pathlib import Path
from typing import List, Optional

load_dotenv() # Loads variables from .env file

# Origins used when ALLOWED_ORIGINS is not set
DEFAULT_ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:10000",
    "http://127.0.0.1:5500", # Live Server (VS Code)
    "https://truyen-cute-api.onrender.com",
]

class Settings(BaseSettings):
    model_config = SettingsConfigDict(extra="ignore")

    PROJECT_NAME: str = "Truyen Cute API"
    API_PREFIX: str = "/api"

    # --- Database ---
    MONGODB_URI: str = "mongodb://localhost:27017/truyen"
    # Falls back to the database named in the URI, then to "truyen"
    MONGODB_DB: Optional[str] = None

    # --- Admin ---
    ADMIN_API_KEY: Optional[str] = None

    # --- HTTP boundary ---
    # Comma-separated list, e.g. "https://a.example,https://b.example"
    ALLOWED_ORIGINS: Optional[str] = None
    HOST: str = "0.0.0.0"
    PORT: int = 10000
    MAX_BODY_BYTES: int = 20 * 1024 * 1024
    RATE_LIMIT_MAX: int = 300
    RATE_LIMIT_WINDOW_SECONDS: int = 15 * 60

    # --- Listing ---
    PAGE_SIZE: int = 24

    PUBLIC_DIR: Path = Path(__file__).resolve().parents[2] / "public"
    LOG_LEVEL: str = "INFO"

    @property
    def allowed_origins(self) -> List[str]:
        if not self.ALLOWED_ORIGINS:
            return list(DEFAULT_ALLOWED_ORIGINS)
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]


settings = Settings()
