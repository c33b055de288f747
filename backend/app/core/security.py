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

import secrets
import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status

from app.core.config import Settings

logger = logging.getLogger(__name__)

UNAUTHORIZED_MESSAGE = "Unauthorized: Invalid API Key"


def get_settings(request: Request) -> Settings:
    """Returns the settings the running app was built with."""
    return request.app.state.settings


def is_valid_api_key(supplied: Optional[str], expected: Optional[str]) -> bool:
    """Exact, case-sensitive comparison. An unset admin key matches nothing."""
    if not supplied or not expected:
        return False
    return secrets.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8"))


async def require_admin_key(
    request: Request,
    x_api_key: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
) -> None:
    """
    Dependency guarding admin routes.
    Raises 401 when the x-api-key header is absent or does not match ADMIN_API_KEY.
    """
    if not is_valid_api_key(x_api_key, settings.ADMIN_API_KEY):
        logger.warning(f"Rejected admin request {request.method} {request.url.path}: invalid or missing API key")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=UNAUTHORIZED_MESSAGE)
