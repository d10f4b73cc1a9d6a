from fastapi import APIRouter

from resumable_stream.api.v1.endpoints import check_stream, llm_stream, sessions

# Create the main API router
router = APIRouter()

router.include_router(llm_stream.router, prefix="/llm-stream", tags=["llm-stream"])
router.include_router(check_stream.router, prefix="/check-stream", tags=["check-stream"])
router.include_router(sessions.router, prefix="/sessions", tags=["sessions"])
