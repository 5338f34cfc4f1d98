import logging
import os
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

import config
from accounts import seed_super_admin
from admin_api import router as admin_router
from auth_api import router as auth_router
from database import Database, get_database
from errors import register_error_handlers
from user_api import router as user_router

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("storefront")


@asynccontextmanager
async def lifespan(app: FastAPI):
    db: Database = app.state.db
    db.create_all()
    with db.transaction() as session:
        seed_super_admin(session)
    logger.info("Storefront API started")
    yield
    db.dispose()


def create_app(database_url: Optional[str] = None) -> FastAPI:
    app = FastAPI(title="Storefront API", lifespan=lifespan)
    app.state.db = Database(database_url or config.DATABASE_URL)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed = (time.perf_counter() - started) * 1000
        logger.info("%s %s -> %s (%.1f ms)", request.method, request.url.path, response.status_code, elapsed)
        return response

    register_error_handlers(app)

    @app.get("/")
    def root():
        return {"message": "Storefront Backend Running"}

    # Simple health and db test
    @app.get("/health")
    def health(db: Database = Depends(get_database)):
        return {"backend": "ok", "db": "ok" if db.ping() else "error"}

    app.include_router(auth_router)
    app.include_router(user_router)
    # /admin/{admin_id} lives in this router, after its fixed sub-paths
    app.include_router(admin_router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
