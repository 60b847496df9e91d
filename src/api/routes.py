"""FastAPI routes for the chat API."""

from __future__ import annotations

import logging
from http import HTTPStatus

from fastapi import APIRouter, Depends

from src.api.dependencies import get_chat_service, get_example_prompts
from src.components.examples import ExamplePrompts
from src.components.read_retrieve_read import ReadRetrieveReadChatService
from src.models import ChatAppResponse, ChatRequest, ExamplesResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])


@router.post("", response_model=ChatAppResponse, status_code=HTTPStatus.OK)
def chat(
    payload: ChatRequest,
    service: ReadRetrieveReadChatService = Depends(get_chat_service),
) -> ChatAppResponse:
    """Answer the latest user question grounded on retrieved sources."""
    logger.debug("Processing chat request with %s history messages", len(payload.history))
    return service.reply(payload.history, payload.overrides)


@router.get("/examples", response_model=ExamplesResponse)
async def list_examples(prompts: ExamplePrompts = Depends(get_example_prompts)) -> ExamplesResponse:
    """Return the example questions offered before the first message."""
    return ExamplesResponse(examples=prompts.examples)
