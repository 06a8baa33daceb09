"""
Quota-gated review reply generation.

The pipeline for one request, each step failing fast:

1. the caller is already authenticated by the route dependency
2. validate the review text
3. check today's usage against the plan's daily limit
4. build the prompt
5. call the provider
6. on success only: record usage, append the request log, report the new quota

Quota is checked before the provider call and counted after it, without a
transaction spanning the call. A failed call therefore never consumes quota,
and two requests from the same user racing through step 3 can both be
admitted before either increment lands.
"""
from typing import Optional
from app.core.config import settings
from app.core.exceptions import InvalidInputError, QuotaExceededError
from app.core.plans import Plan, PlanRegistry, get_plan_registry
from app.llm.prompts import build_system_prompt, build_user_prompt
from app.llm.provider import ReviewResponder, review_responder
from app.schemas.ai import GenerateRequest, GenerateResponse, ModelInfo, ModelsResponse, QuotaUsage, UsageSnapshot
from app.schemas.user import UserInDB
from app.services.usage import UsageLedger, usage_ledger
import logging

logger = logging.getLogger(__name__)

MAX_REVIEW_LENGTH = 5000

AVAILABLE_MODELS = (
    ModelInfo(id="gpt-3.5-turbo", name="GPT-3.5 Turbo", description="Fast and efficient"),
    ModelInfo(id="gpt-4", name="GPT-4", description="Most capable, best quality"),
    ModelInfo(id="gpt-4-turbo", name="GPT-4 Turbo", description="Fast and powerful"),
)


def validate_review_text(review_text: Optional[str]) -> str:
    """Return the trimmed review text or raise InvalidInputError."""
    if review_text is None or not review_text.strip():
        raise InvalidInputError("Review text is required")
    if len(review_text) > MAX_REVIEW_LENGTH:
        raise InvalidInputError(f"Review text is too long (max {MAX_REVIEW_LENGTH} characters)")
    return review_text.strip()


def resolve_model(model: Optional[str]) -> str:
    """Known model ids pass through; anything else becomes the default model."""
    if model and any(m.id == model for m in AVAILABLE_MODELS):
        return model
    return settings.DEFAULT_MODEL


class GenerationOrchestrator:
    def __init__(
        self,
        plans: PlanRegistry,
        ledger: UsageLedger,
        responder: ReviewResponder
    ):
        self.plans = plans
        self.ledger = ledger
        self.responder = responder
        self.endpoint = f"{settings.API_PREFIX}/ai/generate-response"

    async def generate_response(self, user: UserInDB, request: GenerateRequest) -> GenerateResponse:
        review_text = validate_review_text(request.review_text)

        plan = self.plans.resolve(user.plan)
        usage = await self.ledger.get_today(user.id)
        if usage.requests_count >= plan.daily_limit:
            logger.info(f"User {user.id} hit the {plan.id} daily limit ({usage.requests_count}/{plan.daily_limit})")
            raise QuotaExceededError(used=usage.requests_count, limit=plan.daily_limit, plan=plan.id)

        model = resolve_model(request.model)
        result = await self.responder.generate(
            system_prompt=build_system_prompt(request.language, request.tone),
            user_prompt=build_user_prompt(review_text),
            model=model
        )

        await self.ledger.record_usage(user.id, result.total_tokens)

        try:
            await self.ledger.log_request(
                user_id=user.id,
                endpoint=self.endpoint,
                tokens_input=result.prompt_tokens,
                tokens_output=result.completion_tokens,
                model=result.model
            )
        except Exception:
            logger.exception(f"Failed to write request log for user {user.id}")

        updated = await self.ledger.get_today(user.id)
        return GenerateResponse(
            response=result.text,
            usage=QuotaUsage(
                used=updated.requests_count,
                limit=plan.daily_limit,
                remaining=max(0, plan.daily_limit - updated.requests_count),
                plan=plan.id
            )
        )

    async def get_usage_snapshot(self, user: UserInDB) -> UsageSnapshot:
        plan: Plan = self.plans.resolve(user.plan)
        usage = await self.ledger.get_today(user.id)
        return UsageSnapshot(
            used=usage.requests_count,
            limit=plan.daily_limit,
            remaining=max(0, plan.daily_limit - usage.requests_count),
            tokens_used=usage.tokens_used,
            plan=plan.id
        )

    @staticmethod
    def list_available_models() -> ModelsResponse:
        return ModelsResponse(models=list(AVAILABLE_MODELS), default=settings.DEFAULT_MODEL)


generation_orchestrator = GenerationOrchestrator(
    plans=get_plan_registry(),
    ledger=usage_ledger,
    responder=review_responder
)
