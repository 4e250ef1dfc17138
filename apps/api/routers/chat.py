from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from packages.shared.schemas.chat import ChatRequest, ChatResponse

from apps.api.deps import get_chat_service
from apps.api.services.chat_service import ChatService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["chat"])


@router.post("/chat", response_model=ChatResponse)
async def chat(
    req: ChatRequest,
    svc: ChatService = Depends(get_chat_service),
):
    # 200 aunque fallen ambos proveedores: el fallo va dentro del payload.
    try:
        return await svc.compare(req)
    except Exception:
        logger.exception("Chat API error")
        return JSONResponse(status_code=500, content=ChatResponse.server_error().model_dump())
