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

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from app.core.config import Settings, settings as default_settings
from app.core.middleware import BodySizeLimitMiddleware, RateLimitMiddleware
from app.db.mongo import MongoConnection
from app.models.common import format_validation_errors, utcnow

# Set up logging
logging.basicConfig(level=default_settings.LOG_LEVEL.upper())
logger = logging.getLogger(__name__)

# Import the main API router
from app.api.api import api_router

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Opener-Policy": "same-origin",
}


# --- Lifespan Event Handler ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Lifespan: Starting up Truyen Cute API...")
    try:
        app.state.mongo.connect()
    except Exception as e:
        # Without the database every request would fail, so refuse to start
        logger.critical(f"Lifespan: Could not connect to MongoDB: {e}", exc_info=True)
        raise

    yield # The application runs while yielded

    logger.info("Lifespan: Shutting down Truyen Cute API...")
    app.state.mongo.close()


def create_app(settings: Optional[Settings] = None, mongo: Optional[MongoConnection] = None) -> FastAPI:
    settings = settings or default_settings
    app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)
    app.state.settings = settings
    app.state.mongo = mongo or MongoConnection(settings.MONGODB_URI, settings.MONGODB_DB)

    # --- Request Logging Middleware ---
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start_time = time.time()
        logger.info(f"MIDDLEWARE: Incoming request: {request.method} {request.url.path}")
        try:
            response = await call_next(request)
        except Exception as e:
            process_time = time.time() - start_time
            logger.error(f"MIDDLEWARE: Exception during request: {request.method} {request.url.path} - Error: {e} - Time: {process_time:.4f}s", exc_info=True)
            raise
        process_time = time.time() - start_time
        logger.info(f"MIDDLEWARE: Finished request: {request.method} {request.url.path} - Status: {response.status_code} - Time: {process_time:.4f}s")
        return response

    # --- Boundary limits (only /api/ is rate limited) ---
    app.add_middleware(BodySizeLimitMiddleware, max_bytes=settings.MAX_BODY_BYTES)
    app.add_middleware(
        RateLimitMiddleware,
        limit=settings.RATE_LIMIT_MAX,
        window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
        path_prefix=f"{settings.API_PREFIX}/",
    )

    # --- CORS Middleware ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    # --- Security headers (outermost, so limit and preflight responses get them too) ---
    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response

    # --- Error bodies are always {"message": ...} ---
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"message": str(exc.detail)},
                            headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        message = format_validation_errors(exc.errors())
        logger.info(f"Invalid request {request.method} {request.url.path}: {message}")
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"message": message})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"GLOBAL HANDLER: Unhandled exception for {request.method} {request.url.path}: {exc}", exc_info=True)
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"message": str(exc) or "Lỗi máy chủ"})

    # --- Health Check ---
    @app.get("/health")
    async def health():
        return {"status": "OK", "timestamp": utcnow().isoformat().replace("+00:00", "Z")}

    # --- Include API Routers ---
    app.include_router(api_router, prefix=settings.API_PREFIX)

    # --- Admin panel and static files from PUBLIC_DIR ---
    public_dir = settings.PUBLIC_DIR

    @app.get("/admin", include_in_schema=False)
    async def admin_page():
        admin_html = public_dir / "admin.html"
        if not admin_html.is_file():
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Không tìm thấy trang quản trị")
        return FileResponse(admin_html)

    # Mounted last so it only sees paths no route matched
    app.mount("/", StaticFiles(directory=public_dir, check_dir=False), name="public")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    logger.info(f"Admin Panel -> http://localhost:{default_settings.PORT}/admin")
    uvicorn.run(app, host=default_settings.HOST, port=default_settings.PORT)
