from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from packages.shared.schemas.common import ErrorResponse
from packages.shared.schemas.feedback import FeedbackRequest, FeedbackResponse

from apps.api.deps import get_feedback_service, get_session_id
from apps.api.services.feedback_service import FeedbackService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["feedback"])


@router.post("/feedback", response_model=FeedbackResponse)
async def feedback(
    req: FeedbackRequest,
    session_id: str | None = Depends(get_session_id),
    svc: FeedbackService = Depends(get_feedback_service),
):
    try:
        record = await svc.record(req, session_id=session_id)
    except Exception:
        logger.exception("Feedback API error")
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(error="Internal server error").model_dump(mode="json"),
        )

    return FeedbackResponse(id=record.id)
