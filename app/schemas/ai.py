from pydantic import BaseModel, Field
from typing import List, Optional


class GenerateRequest(BaseModel):
    """Request model for review reply generation."""
    review_text: Optional[str] = Field(default=None, alias="reviewText", description="The customer review")
    language: Optional[str] = Field(default=None, description="Reply language code, e.g. 'en'")
    tone: Optional[str] = Field(default=None, description="Reply tone, e.g. 'professional'")
    model: Optional[str] = Field(default=None, description="Model id from /ai/models")

    class Config:
        populate_by_name = True


class QuotaUsage(BaseModel):
    """Today's quota position."""
    used: int
    limit: int
    remaining: int
    plan: str


class UsageSnapshot(QuotaUsage):
    """Quota position including tokens consumed today."""
    tokens_used: int = Field(alias="tokensUsed")

    class Config:
        populate_by_name = True


class GenerateResponse(BaseModel):
    response: str
    usage: QuotaUsage


class UsageResponse(BaseModel):
    usage: UsageSnapshot


class ModelInfo(BaseModel):
    id: str
    name: str
    description: str


class ModelsResponse(BaseModel):
    models: List[ModelInfo]
    default: str
