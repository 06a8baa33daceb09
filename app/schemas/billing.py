from pydantic import BaseModel, Field
from typing import List, Optional


class CheckoutSessionRequest(BaseModel):
    plan_id: Optional[str] = Field(default=None, alias="planId")

    class Config:
        populate_by_name = True


class CheckoutSessionResponse(BaseModel):
    session_id: str = Field(alias="sessionId")
    url: str

    class Config:
        populate_by_name = True


class PortalSessionResponse(BaseModel):
    url: str


class PlanInfo(BaseModel):
    """Public plan description for the pricing panel."""
    id: str
    name: str
    daily_limit: int = Field(alias="dailyLimit")
    price_monthly: float = Field(alias="priceMonthly")
    features: List[str]
    has_billing_price: bool = Field(alias="hasBillingPrice")
    is_current: Optional[bool] = Field(default=None, alias="isCurrent")

    class Config:
        populate_by_name = True


class PlansResponse(BaseModel):
    plans: List[PlanInfo]
