"""Image analysis and chat endpoints."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import APIRouter, File, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from nutrition_chat.api.errors import error_response
from nutrition_chat.api.models import ChatRequest  # noqa: TC001
from nutrition_chat.errors import NutritionChatError, ValidationError
from nutrition_chat.services.images import to_base64

if TYPE_CHECKING:
    from nutrition_chat.containers import AppContainer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/openai", tags=["openai"])


@router.post("/analyze-image", response_model=None)
async def analyze_image(
    request: Request, file: UploadFile | None = File(default=None)
) -> dict[str, object] | JSONResponse:
    """Analyze a nutrition label or food image."""
    container: AppContainer = request.app.state.container
    if file is None:
        raise ValidationError("No file uploaded")

    content = await file.read()
    container.image_preprocessor.validate_upload(file.content_type, len(content))

    try:
        optimized = await run_in_threadpool(
            container.image_preprocessor.preprocess, content
        )
        result = await container.vision_service.analyze(to_base64(optimized))
    except NutritionChatError as exc:
        logger.warning(
            "Image analysis failed",
            extra={"file_name": file.filename, "error": exc.message},
        )
        return error_response(container, exc, "Failed to analyze image")
    except Exception as exc:
        logger.exception("Unexpected image analysis error")
        return error_response(container, exc, "Failed to analyze image")

    return {"success": True, "data": result.to_wire()}


@router.post("/chat", response_model=None)
async def chat(
    body: ChatRequest, request: Request
) -> dict[str, object] | JSONResponse:
    """Chat with nutrition context."""
    container: AppContainer = request.app.state.container
    try:
        response = await container.chat_service.reply(
            body.message,
            body.nutrition_context,
            body.conversation_history,
        )
    except NutritionChatError as exc:
        logger.warning("Chat request failed", extra={"error": exc.message})
        return error_response(container, exc, "Failed to get chat response")
    except Exception as exc:
        logger.exception("Unexpected chat error")
        return error_response(container, exc, "Failed to get chat response")

    return {"success": True, "response": response}
