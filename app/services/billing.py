"""
Stripe integration: checkout and portal sessions, and the webhook reducer
that keeps each user's plan in step with their Stripe subscription.

Webhook handling only ever touches plan and subscription fields, never usage.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional
import json
import logging

import stripe
from fastapi import HTTPException
from fastapi.concurrency import run_in_threadpool

from app.core.config import settings
from app.core.exceptions import BillingProviderError, InvalidInputError, SignatureInvalidError
from app.core.plans import PlanRegistry, get_plan_registry
from app.schemas.user import SubscriptionStatus, UserInDB
from app.services.users import UserService, user_service

logger = logging.getLogger(__name__)


class BillingEventType(str, Enum):
    CHECKOUT_COMPLETED = "checkout.session.completed"
    SUBSCRIPTION_CREATED = "customer.subscription.created"
    SUBSCRIPTION_UPDATED = "customer.subscription.updated"
    SUBSCRIPTION_DELETED = "customer.subscription.deleted"
    PAYMENT_FAILED = "invoice.payment_failed"


# Stripe subscription statuses folded onto the statuses we store
STRIPE_STATUS_MAP = {
    "active": SubscriptionStatus.ACTIVE,
    "trialing": SubscriptionStatus.ACTIVE,
    "past_due": SubscriptionStatus.PAST_DUE,
    "unpaid": SubscriptionStatus.PAST_DUE,
    "canceled": SubscriptionStatus.CANCELED,
    "incomplete_expired": SubscriptionStatus.CANCELED,
}


def map_subscription_status(stripe_status: Optional[str]) -> SubscriptionStatus:
    return STRIPE_STATUS_MAP.get(stripe_status or "", SubscriptionStatus.NONE)


def _first_item(subscription: Dict[str, Any]) -> Dict[str, Any]:
    items = (subscription.get("items") or {}).get("data") or []
    return items[0] if items else {}


def _price_id(subscription: Dict[str, Any]) -> Optional[str]:
    return (_first_item(subscription).get("price") or {}).get("id")


def _period_end(subscription: Dict[str, Any]) -> Optional[datetime]:
    # Newer API versions carry the period on the subscription item
    timestamp = subscription.get("current_period_end") or _first_item(subscription).get("current_period_end")
    if not timestamp:
        return None
    return datetime.fromtimestamp(int(timestamp), tz=timezone.utc)


async def log_payment_failed(user: UserInDB, invoice: Dict[str, Any]):
    """Default payment-failure hook."""
    logger.warning(f"Payment failed for user {user.id} (invoice {invoice.get('id')})")


class BillingService:
    def __init__(
        self,
        plans: PlanRegistry,
        users: UserService,
        on_payment_failed: Callable[[UserInDB, Dict[str, Any]], Awaitable[None]] = log_payment_failed
    ):
        self.plans = plans
        self.users = users
        self.on_payment_failed = on_payment_failed
        self._handlers = {
            BillingEventType.CHECKOUT_COMPLETED: self.handle_checkout_completed,
            BillingEventType.SUBSCRIPTION_CREATED: self.handle_subscription_updated,
            BillingEventType.SUBSCRIPTION_UPDATED: self.handle_subscription_updated,
            BillingEventType.SUBSCRIPTION_DELETED: self.handle_subscription_deleted,
            BillingEventType.PAYMENT_FAILED: self.handle_payment_failed,
        }

    def _configure_stripe(self):
        if not settings.STRIPE_SECRET_KEY:
            raise HTTPException(status_code=500, detail="Stripe API key not configured")
        stripe.api_key = settings.STRIPE_SECRET_KEY

    async def create_checkout_session(self, user: UserInDB, plan_id: Optional[str]) -> Dict[str, str]:
        """Start a Stripe Checkout subscription for ``plan_id``."""
        plan = self.plans.resolve(plan_id)
        if plan.id != plan_id or not plan.has_billing_price:
            raise InvalidInputError("Invalid plan selected")

        self._configure_stripe()
        dashboard_url = settings.dashboard_url

        try:
            customer_id = user.stripe_customer_id
            if not customer_id:
                customer = await run_in_threadpool(
                    stripe.Customer.create,
                    email=user.email,
                    name=user.name or None,
                    metadata={"userId": user.id}
                )
                customer_id = customer.id
                await self.users.set_customer_ref(user.id, customer_id)
                logger.info(f"Created Stripe customer {customer_id} for user {user.id}")

            session = await run_in_threadpool(
                stripe.checkout.Session.create,
                customer=customer_id,
                mode="subscription",
                payment_method_types=["card"],
                line_items=[{"price": plan.billing_price_ref, "quantity": 1}],
                success_url=f"{dashboard_url}/success?session_id={{CHECKOUT_SESSION_ID}}",
                cancel_url=f"{dashboard_url}/cancel",
                subscription_data={"metadata": {"userId": user.id, "planId": plan.id}},
                allow_promotion_codes=True,
                billing_address_collection="auto"
            )
        except stripe.StripeError as e:
            logger.error(f"Checkout session error for user {user.id}: {e}")
            raise BillingProviderError("Failed to create checkout session")

        return {"sessionId": session.id, "url": session.url}

    async def create_portal_session(self, user: UserInDB) -> Dict[str, str]:
        """Open the Stripe customer portal for managing the subscription."""
        if not user.stripe_customer_id:
            raise InvalidInputError("No active subscription found")

        self._configure_stripe()

        try:
            session = await run_in_threadpool(
                stripe.billing_portal.Session.create,
                customer=user.stripe_customer_id,
                return_url=settings.dashboard_url
            )
        except stripe.StripeError as e:
            logger.error(f"Portal session error for user {user.id}: {e}")
            raise BillingProviderError("Failed to create portal session")

        return {"url": session.url}

    def construct_event(self, payload: bytes, sig_header: Optional[str]) -> Dict[str, Any]:
        """Verify the Stripe signature over ``payload`` and only then parse it."""
        webhook_secret = settings.STRIPE_WEBHOOK_SECRET
        if not webhook_secret:
            raise HTTPException(status_code=500, detail="Webhook secret not configured")
        if not sig_header:
            raise SignatureInvalidError("Missing Stripe-Signature header")

        try:
            body = payload.decode("utf-8")
            stripe.WebhookSignature.verify_header(
                body, sig_header, webhook_secret, tolerance=stripe.Webhook.DEFAULT_TOLERANCE
            )
            event = json.loads(body)
        except stripe.SignatureVerificationError as e:
            logger.warning(f"Webhook signature verification failed: {e}")
            raise SignatureInvalidError()
        except ValueError:
            # UnicodeDecodeError and JSONDecodeError both land here
            raise SignatureInvalidError("Invalid payload")

        if not isinstance(event, dict) or "type" not in event:
            raise SignatureInvalidError("Invalid payload")
        return event

    async def handle_event(self, event: Dict[str, Any]):
        event_type = event.get("type")
        logger.info(f"Stripe webhook received: {event_type}")

        try:
            kind = BillingEventType(event_type)
        except ValueError:
            logger.info(f"Unhandled event type: {event_type}")
            return

        obj = (event.get("data") or {}).get("object") or {}
        await self._handlers[kind](obj, kind)

    async def _user_for_customer(self, customer_id: Optional[str], event_type: BillingEventType) -> Optional[UserInDB]:
        user = await self.users.get_by_customer_ref(customer_id)
        if not user:
            logger.warning(f"User not found for customer {customer_id}, dropping {event_type.value}")
        return user

    async def handle_checkout_completed(self, session: Dict[str, Any], kind: BillingEventType):
        """Plan state follows the subscription events; checkout is only logged."""
        user = await self._user_for_customer(session.get("customer"), kind)
        if user:
            logger.info(f"Checkout completed for user {user.id}")

    async def handle_subscription_updated(self, subscription: Dict[str, Any], kind: BillingEventType):
        """Also handles customer.subscription.created."""
        customer_id = subscription.get("customer")
        user = await self._user_for_customer(customer_id, kind)
        if not user:
            return

        plan = self.plans.resolve_by_billing_price_ref(_price_id(subscription))
        status = map_subscription_status(subscription.get("status"))
        await self.users.update_subscription(
            customer_id=customer_id,
            plan=plan.id,
            subscription_id=subscription.get("id"),
            status=status,
            period_end=_period_end(subscription)
        )
        logger.info(f"Subscription updated for user {user.id}: {plan.id} ({status.value})")

    async def handle_subscription_deleted(self, subscription: Dict[str, Any], kind: BillingEventType):
        customer_id = subscription.get("customer")
        user = await self._user_for_customer(customer_id, kind)
        if not user:
            return

        await self.users.update_subscription(
            customer_id=customer_id,
            plan=self.plans.free.id,
            subscription_id=None,
            status=SubscriptionStatus.CANCELED,
            period_end=None
        )
        logger.info(f"Subscription canceled for user {user.id}, reverted to free plan")

    async def handle_payment_failed(self, invoice: Dict[str, Any], kind: BillingEventType):
        user = await self._user_for_customer(invoice.get("customer"), kind)
        if user:
            await self.on_payment_failed(user, invoice)


billing_service = BillingService(plans=get_plan_registry(), users=user_service)
