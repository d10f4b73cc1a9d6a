import logging

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from resumable_stream.api.v1.api import router as api_router
from resumable_stream.config import settings
from resumable_stream.core.redis import get_redis_client, ping_redis

logger = logging.getLogger(__name__)

app = FastAPI(title="Resumable Stream API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Health check route
@app.get("/health")
async def health_check():
    redis_ok = await ping_redis(get_redis_client())
    return {"status": "ok", "redis": "ok" if redis_ok else "unavailable"}


# Include v1 routers
app.include_router(api_router, prefix="/api/v1")


def main() -> None:
    """Entry point for the API process."""
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    logger.info("Starting Resumable Stream API on %s:%d", settings.API_HOST, settings.API_PORT)
    uvicorn.run(app, host=settings.API_HOST, port=settings.API_PORT)


if __name__ == "__main__":
    main()
