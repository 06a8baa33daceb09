from fastapi import APIRouter, Depends
from app.api.v1.auth import get_current_user
from app.schemas.ai import GenerateRequest, GenerateResponse, ModelsResponse, UsageResponse
from app.schemas.user import UserInDB
from app.services.generation import GenerationOrchestrator, generation_orchestrator
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ai", tags=["AI"])


@router.post("/generate-response", response_model=GenerateResponse)
async def generate_response(
    request: GenerateRequest,
    user: UserInDB = Depends(get_current_user)
):
    """
    Generate a reply to a customer review.

    Counts against the caller's daily quota only when a reply is produced.
    """
    return await generation_orchestrator.generate_response(user, request)


@router.get("/usage", response_model=UsageResponse)
async def get_usage(user: UserInDB = Depends(get_current_user)):
    """Get today's usage for the current user."""
    return UsageResponse(usage=await generation_orchestrator.get_usage_snapshot(user))


@router.get("/models", response_model=ModelsResponse)
async def list_models():
    return GenerationOrchestrator.list_available_models()
