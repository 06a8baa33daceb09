from fastapi import APIRouter, Depends
from app.api.v1.auth import get_current_user
from app.core.plans import get_plan_registry
from app.schemas.user import UserInDB
from app.services.generation import generation_orchestrator

router = APIRouter(prefix="/user", tags=["User"])


def _iso(value):
    return value.isoformat() if value else None


@router.get("/profile")
async def get_profile(user: UserInDB = Depends(get_current_user)):
    """Profile with subscription and today's usage."""
    plan = get_plan_registry().resolve(user.plan)
    usage = await generation_orchestrator.get_usage_snapshot(user)

    return {
        "user": {
            "id": user.id,
            "email": user.email,
            "name": user.name,
            "createdAt": _iso(user.created_at)
        },
        "subscription": {
            "plan": plan.id,
            "planName": plan.name,
            "status": user.subscription_status.value,
            "currentPeriodEnd": _iso(user.subscription_current_period_end),
            "features": list(plan.features)
        },
        "usage": {
            "today": {
                "used": usage.used,
                "limit": usage.limit,
                "remaining": usage.remaining,
                "tokensUsed": usage.tokens_used
            }
        }
    }


@router.get("/subscription")
async def get_subscription(user: UserInDB = Depends(get_current_user)):
    """Current subscription and the plans available to switch to."""
    plans = get_plan_registry()
    current = plans.resolve(user.plan)

    return {
        "current": {
            "planId": current.id,
            "planName": current.name,
            "dailyLimit": current.daily_limit,
            "priceMonthly": current.price_monthly,
            "status": user.subscription_status.value,
            "currentPeriodEnd": _iso(user.subscription_current_period_end)
        },
        "availablePlans": [
            {
                "id": plan.id,
                "name": plan.name,
                "dailyLimit": plan.daily_limit,
                "priceMonthly": plan.price_monthly,
                "features": list(plan.features),
                "isCurrent": plan.id == current.id,
                "canUpgrade": plan.price_monthly > current.price_monthly
            }
            for plan in plans.all()
        ]
    }
