"""LLM relay request/response schemas."""

from typing import Optional

from pydantic import BaseModel, Field

from linkpost.services.llm_service import LLMProvider


class GenerateRequest(BaseModel):
    prompt: Optional[str] = None
    systemPrompt: Optional[str] = None
    apiKey: Optional[str] = None
    model: Optional[str] = None
    maxTokens: Optional[int] = Field(None, gt=0, le=8192)
    temperature: Optional[float] = Field(None, ge=0, le=2)
    provider: Optional[LLMProvider] = None


class AssistRequest(BaseModel):
    topic: Optional[str] = None
    content: Optional[str] = None
    tone: Optional[str] = None
    systemPrompt: Optional[str] = None
    apiKey: Optional[str] = None
    model: Optional[str] = None
    maxTokens: Optional[int] = Field(None, gt=0, le=8192)
    temperature: Optional[float] = Field(None, ge=0, le=2)
    provider: Optional[LLMProvider] = None


class GenerateResponse(BaseModel):
    text: str


class ProviderInfo(BaseModel):
    provider: LLMProvider
    models: list[str]
    defaultModel: str
    serverKeyConfigured: bool
