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

"""Boundary middleware: per-client rate limiting and request body size cap.

The rate limiter keeps its sliding windows in process memory, so limits are
per worker process.
"""

import time
import logging
from typing import Callable, Dict, List, Optional, Tuple

from fastapi import HTTPException, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse, PlainTextResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Quá nhiều request, vui lòng thử lại sau."
PAYLOAD_TOO_LARGE_MESSAGE = "Payload quá lớn"


class RateLimiter:
    """In-memory sliding window limiter keyed by client address."""

    def __init__(self, limit: int, window_seconds: int, clock: Callable[[], float] = time.time):
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._hits: Dict[str, List[float]] = {}
        self._next_sweep = clock() + window_seconds

    def hit(self, key: str) -> Tuple[bool, Dict[str, str]]:
        """
        Records a request for `key` if it fits in the window.

        Returns:
            (allowed, headers) where headers describe the remaining quota.
        """
        now = self._clock()
        window_start = now - self.window_seconds
        if now >= self._next_sweep:
            self._sweep(window_start)
            self._next_sweep = now + self.window_seconds

        hits = [ts for ts in self._hits.get(key, []) if ts > window_start]

        reset_at = int((hits[0] if hits else now) + self.window_seconds)
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Reset": str(reset_at),
        }

        if len(hits) >= self.limit:
            self._store(key, hits)
            headers["X-RateLimit-Remaining"] = "0"
            headers["Retry-After"] = str(max(0, int(reset_at - now)))
            return False, headers

        hits.append(now)
        self._store(key, hits)
        headers["X-RateLimit-Remaining"] = str(self.limit - len(hits))
        return True, headers

    def _store(self, key: str, hits: List[float]):
        if hits:
            self._hits[key] = hits
        else:
            self._hits.pop(key, None)

    def _sweep(self, window_start: float):
        """Drops clients whose every hit has left the window."""
        stale = [key for key, hits in self._hits.items() if not hits or hits[-1] <= window_start]
        for key in stale:
            del self._hits[key]

    def tracked_keys(self) -> int:
        return len(self._hits)

    def reset(self):
        self._hits.clear()


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Applies a RateLimiter to every request whose path starts with `path_prefix`."""

    def __init__(self, app, limit: int, window_seconds: int, path_prefix: str = "/api/",
                 limiter: Optional[RateLimiter] = None):
        super().__init__(app)
        self.path_prefix = path_prefix
        self.limiter = limiter or RateLimiter(limit=limit, window_seconds=window_seconds)

    async def dispatch(self, request: Request, call_next) -> Response:
        if not request.url.path.startswith(self.path_prefix):
            return await call_next(request)

        client_key = request.client.host if request.client else "unknown"
        allowed, headers = self.limiter.hit(client_key)
        if not allowed:
            logger.warning(f"Rate limit exceeded for {client_key} on {request.method} {request.url.path}")
            return PlainTextResponse(RATE_LIMIT_MESSAGE, status_code=429, headers=headers)

        response = await call_next(request)
        for name, value in headers.items():
            response.headers[name] = value
        return response


class BodySizeLimitMiddleware:
    """
    Caps request bodies at `max_bytes`.

    A declared Content-Length over the cap is rejected before the app runs.
    Bodies without one (chunked uploads) are counted as they are received,
    and reading past the cap raises a 413 inside the request.
    """

    def __init__(self, app: ASGIApp, max_bytes: int):
        self.app = app
        self.max_bytes = max_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope)
        content_length = request.headers.get("content-length")
        if content_length is not None:
            try:
                declared = int(content_length)
            except ValueError:
                response = JSONResponse(status_code=400, content={"message": "Content-Length không hợp lệ"})
                await response(scope, receive, send)
                return
            if declared > self.max_bytes:
                logger.warning(f"Rejected {request.method} {request.url.path}: body of {declared} bytes exceeds {self.max_bytes}")
                response = JSONResponse(status_code=413, content={"message": PAYLOAD_TOO_LARGE_MESSAGE})
                await response(scope, receive, send)
                return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_bytes:
                    logger.warning(f"Rejected {request.method} {request.url.path}: streamed body exceeds {self.max_bytes} bytes")
                    raise HTTPException(status_code=413, detail=PAYLOAD_TOO_LARGE_MESSAGE)
            return message

        await self.app(scope, limited_receive, send)
