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

import pytest
from pathlib import Path
import sys

# Add the backend root to the Python path to allow imports like `from app.services...`
project_root = Path(__file__).parent.parent.resolve()
sys.path.insert(0, str(project_root))
# Let tests import helpers like `fake_mongo` directly
sys.path.insert(0, str(Path(__file__).parent.resolve()))

from app.core.config import Settings

ADMIN_KEY = "test-admin-key"


@pytest.fixture(scope="function")
def test_settings() -> Settings:
    """Settings with a known admin key and the bundled public/ directory."""
    return Settings(
        ADMIN_API_KEY=ADMIN_KEY,
        MONGODB_URI="mongodb://localhost:27017/truyen_test",
        PUBLIC_DIR=project_root / "public",
        ALLOWED_ORIGINS=None,
    )


@pytest.fixture(scope="function")
def admin_headers() -> dict:
    return {"x-api-key": ADMIN_KEY}
