"""Chat relay API endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import ValidationError as PydanticValidationError

from app.core.auth import get_optional_user_id, get_user_id
from app.core.exceptions import (
    ConfigurationError,
    ValidationError,
    format_error_message,
)
from app.core.logging import setup_logger
from app.dependencies.get_chat_service import get_chat_service
from app.schemas.chat import ChatRequest, ErrorResponse, HistoryResponse
from app.services.chat import ChatService

logger = setup_logger(__name__)

router = APIRouter(tags=["chat"], prefix="/chat")

INVALID_MESSAGES = "Invalid messages format"

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


async def parse_chat_request(request: Request) -> ChatRequest:
    """
    Read and validate the relay request body.

    Raises:
        ValidationError: If the body is not JSON, or ``messages`` is missing,
            not a list, empty, or holds an entry that is not a message.
    """
    try:
        body = await request.json()
    except ValueError:
        raise ValidationError(INVALID_MESSAGES)

    if not isinstance(body, dict):
        raise ValidationError(INVALID_MESSAGES)

    messages = body.get("messages")
    if not isinstance(messages, list) or len(messages) == 0:
        raise ValidationError(INVALID_MESSAGES)

    try:
        return ChatRequest.model_validate(body)
    except PydanticValidationError as e:
        raise ValidationError(INVALID_MESSAGES, details={"errors": e.errors()})


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content=ErrorResponse(error=message).model_dump()
    )


@router.post(
    "",
    status_code=status.HTTP_200_OK,
    summary="Relay a conversation to the chat-completion API",
    responses={
        400: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def relay_chat(
    request: Request,
    user_id: Optional[str] = Depends(get_optional_user_id),
    chat_service: ChatService = Depends(get_chat_service),
):
    """
    Forward a conversation upstream and return the reply.

    Body: `{"messages": [{"role": "user"|"assistant", "content": "...", "reasoning"?: "..."}], "stream"?: bool}`

    - `stream=false` (default): the upstream JSON response, unchanged.
    - `stream=true`: the upstream Server-Sent Events stream, unchanged, as
      `text/event-stream`. Each event is `data: <json>` and the stream ends
      with `data: [DONE]`.

    When a `User-Id` header is sent, the user's message and the assistant
    reply are also saved to that user's conversation history.

    Errors are returned as `{"error": "..."}`:
    - 400: `messages` missing, empty, not a list, or malformed
      (an entry that is not a user or assistant message is rejected here
      rather than forwarded upstream)
    - 500: API credential not configured, or the upstream call failed
    """
    try:
        chat_request = await parse_chat_request(request)
    except ValidationError as e:
        logger.warning(f"Rejected chat request: {e.message}")
        return error_response(e.status_code, e.message)

    try:
        chat_service.ensure_configured()
    except ConfigurationError as e:
        logger.error(f"Chat relay misconfigured: {e.message}")
        return error_response(e.status_code, e.message)

    try:
        if chat_request.stream:
            body = await chat_service.stream_chat(chat_request, user_id=user_id)
            return StreamingResponse(
                chat_service.relay_stream(body),
                media_type="text/event-stream",
                headers=STREAM_HEADERS,
            )

        result = await chat_service.complete_chat(chat_request, user_id=user_id)
        return JSONResponse(content=result)
    except Exception as e:
        logger.error(f"Chat API error: {e}", exc_info=True)
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR, format_error_message(e)
        )


@router.get(
    "/history",
    status_code=status.HTTP_200_OK,
    response_model=HistoryResponse,
    summary="Get the current user's conversation history",
)
async def get_history(
    user_id: str = Depends(get_user_id),
    chat_service: ChatService = Depends(get_chat_service),
):
    """
    Return the stored conversation for the `User-Id` header, oldest first.

    Each message has `id`, `role`, `content`, `reasoning` and `timestamp`.
    """
    try:
        messages = await chat_service.get_history(user_id)
        return HistoryResponse(messages=messages)
    except Exception as e:
        logger.error(f"Error retrieving chat history: {e}", exc_info=True)
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            format_error_message(e, prefix="Failed to retrieve chat history"),
        )
