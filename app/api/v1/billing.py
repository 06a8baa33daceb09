from fastapi import APIRouter, Depends, Request
from typing import Optional
from app.api.v1.auth import get_current_user, get_optional_user
from app.core.plans import get_plan_registry
from app.schemas.billing import (
    CheckoutSessionRequest,
    CheckoutSessionResponse,
    PlanInfo,
    PlansResponse,
    PortalSessionResponse
)
from app.schemas.user import UserInDB
from app.services.billing import billing_service
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/billing", tags=["Billing"])


@router.post("/checkout-session", response_model=CheckoutSessionResponse)
async def create_checkout_session(
    request: CheckoutSessionRequest,
    user: UserInDB = Depends(get_current_user)
):
    """Create a Stripe Checkout session for a paid plan."""
    session = await billing_service.create_checkout_session(user, request.plan_id)
    return CheckoutSessionResponse(session_id=session["sessionId"], url=session["url"])


@router.post("/portal-session", response_model=PortalSessionResponse)
async def create_portal_session(user: UserInDB = Depends(get_current_user)):
    """Create a Stripe Customer Portal session for managing the subscription."""
    session = await billing_service.create_portal_session(user)
    return PortalSessionResponse(url=session["url"])


@router.post("/webhook", include_in_schema=False)
async def stripe_webhook(request: Request):
    """
    Handle Stripe webhook events.
    The signature is checked against the raw body before anything is read from it.
    """
    payload = await request.body()
    sig_header = request.headers.get("stripe-signature")

    event = billing_service.construct_event(payload, sig_header)
    await billing_service.handle_event(event)

    return {"received": True}


@router.get("/plans", response_model=PlansResponse, response_model_exclude_none=True)
async def list_plans(user: Optional[UserInDB] = Depends(get_optional_user)):
    """Available plans. Signed-in callers also see which one is theirs."""
    plans = get_plan_registry()
    current = plans.resolve(user.plan).id if user else None
    return PlansResponse(plans=[
        PlanInfo(
            id=plan.id,
            name=plan.name,
            daily_limit=plan.daily_limit,
            price_monthly=plan.price_monthly,
            features=list(plan.features),
            has_billing_price=plan.has_billing_price,
            is_current=(plan.id == current) if user else None
        )
        for plan in plans.all()
    ])
