"""LLM relay: generate text through one of the configured providers."""

from fastapi import APIRouter, HTTPException, status

from linkpost.core.exceptions import LLMProviderError
from linkpost.schemas.ai import AssistRequest, GenerateRequest, GenerateResponse, ProviderInfo
from linkpost.services.ai_prompts import ASSIST_ACTIONS, build_assist_prompt
from linkpost.services.llm_service import (
    DEFAULT_MODELS,
    PROVIDER_MODELS,
    LLMProvider,
    generate_text,
    server_api_key,
)

router = APIRouter(prefix="/ai", tags=["ai"])


def _generate(prompt, system_prompt, body) -> GenerateResponse:
    try:
        text = generate_text(
            prompt,
            system_prompt=system_prompt,
            provider=body.provider,
            api_key=body.apiKey,
            model=body.model,
            max_tokens=body.maxTokens,
            temperature=body.temperature,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"error": str(e)})
    except LLMProviderError as e:
        code = e.status_code if e.status_code and e.status_code >= 400 else status.HTTP_500_INTERNAL_SERVER_ERROR
        raise HTTPException(status_code=code, detail={"error": e.message})
    return GenerateResponse(text=text)


@router.post("/generate", response_model=GenerateResponse)
def generate(body: GenerateRequest):
    return _generate(body.prompt or "", body.systemPrompt, body)


@router.post("/assist/{action}", response_model=GenerateResponse)
def assist(action: str, body: AssistRequest):
    """Composer shortcuts: post, hashtags, rewrite, improve, ideas, framework, first-comment."""
    if action not in ASSIST_ACTIONS:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail={"error": f"Unknown action: {action}"})
    try:
        prompt, system_prompt = build_assist_prompt(
            action,
            topic=body.topic,
            content=body.content,
            tone=body.tone,
            system_prompt=body.systemPrompt,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"error": str(e)})
    return _generate(prompt, system_prompt, body)


@router.get("/providers", response_model=list[ProviderInfo])
def list_providers():
    return [
        ProviderInfo(
            provider=provider,
            models=PROVIDER_MODELS[provider],
            defaultModel=DEFAULT_MODELS[provider],
            serverKeyConfigured=bool(server_api_key(provider)),
        )
        for provider in LLMProvider
    ]
