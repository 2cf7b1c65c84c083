"""Tier-gated model routes.

Each route checks the caller's plan before the prompt is forwarded to the
model proxy.
"""

from typing import Any, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from codegolden.api.deps import get_model_proxy, require_tier
from codegolden.core.errors import ValidationError
from codegolden.features.access.gate import FEATURE_TIERS
from codegolden.features.ai.providers import ChatMessage
from codegolden.features.ai.service import ModelProxy
from codegolden.models.identity import Identity

router = APIRouter(prefix="/api", tags=["ai"])


class PromptRequest(BaseModel):
    prompt: Optional[str] = None


class ConversationRequest(BaseModel):
    # Shape checked by _require_messages
    messages: Any = None


class GenerateResponse(BaseModel):
    text: str


def _require_prompt(body: PromptRequest) -> str:
    if not body.prompt or not body.prompt.strip():
        raise ValidationError("No prompt provided.")
    return body.prompt


def _require_messages(body: ConversationRequest) -> List[ChatMessage]:
    if not isinstance(body.messages, list) or not body.messages:
        raise ValidationError("No messages provided (expected an array).")
    try:
        return [ChatMessage.model_validate(item) for item in body.messages]
    except PydanticValidationError:
        raise ValidationError("Each message needs a role and content.")


@router.post("/generate-playground", response_model=GenerateResponse)
async def generate_playground(
    body: PromptRequest,
    identity: Identity = Depends(require_tier(FEATURE_TIERS["playground"])),
    proxy: ModelProxy = Depends(get_model_proxy),
):
    text = await proxy.generate_from_prompt("playground", _require_prompt(body))
    return GenerateResponse(text=text)


@router.post("/generate-advanced", response_model=GenerateResponse)
async def generate_advanced(
    body: PromptRequest,
    identity: Identity = Depends(require_tier(FEATURE_TIERS["advanced"])),
    proxy: ModelProxy = Depends(get_model_proxy),
):
    text = await proxy.generate_from_prompt("advanced", _require_prompt(body))
    return GenerateResponse(text=text)


@router.post("/generate-deepseek", response_model=GenerateResponse)
async def generate_deepseek(
    body: PromptRequest,
    identity: Identity = Depends(require_tier(FEATURE_TIERS["deepseek"])),
    proxy: ModelProxy = Depends(get_model_proxy),
):
    text = await proxy.generate_from_prompt("deepseek", _require_prompt(body))
    return GenerateResponse(text=text)


@router.post("/generate-ultra", response_model=GenerateResponse)
async def generate_ultra(
    body: ConversationRequest,
    identity: Identity = Depends(require_tier(FEATURE_TIERS["ultra"])),
    proxy: ModelProxy = Depends(get_model_proxy),
):
    text = await proxy.generate("ultra", _require_messages(body))
    return GenerateResponse(text=text)
