"""Stripe checkout and webhook handling for the Pro plan.

Webhook payloads are trusted only after their ``Stripe-Signature`` header
verifies against ``STRIPE_WEBHOOK_SECRET``. Whatever happens, the HTTP layer
acknowledges receipt so Stripe does not keep retrying.
"""
import logging

import stripe

from buildcheck import db
from buildcheck.errors import BillingUnconfigured

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"
PRODUCT_NAME = "Validate Before You Build - Pro Plan"
PRODUCT_DESCRIPTION = "Unlimited validations and full access to all features."


def create_checkout(settings, account):
    """Create a subscription checkout session and return its URL."""
    if not settings.billing_enabled:
        raise BillingUnconfigured()

    try:
        session = stripe.checkout.Session.create(
            api_key=settings.stripe_secret_key,
            payment_method_types=["card"],
            line_items=[
                {
                    "price_data": {
                        "currency": "usd",
                        "product_data": {
                            "name": PRODUCT_NAME,
                            "description": PRODUCT_DESCRIPTION,
                        },
                        "unit_amount": settings.pro_price_cents,
                        "recurring": {"interval": "month"},
                    },
                    "quantity": 1,
                },
            ],
            mode="subscription",
            success_url=f"{settings.app_url}/dashboard?success=true",
            cancel_url=f"{settings.app_url}/dashboard?canceled=true",
            client_reference_id=str(account.id),
        )
    except stripe.StripeError as e:
        logger.error(f"❌ Stripe checkout error for account {account.id}: {e}")
        raise BillingUnconfigured("Failed to create checkout session")

    logger.info(f"💳 Checkout session created for account {account.id}")
    return session.url


def verify_event(settings, payload, signature):
    """Return the decoded event, or None when it cannot be trusted."""
    if not settings.stripe_webhook_secret:
        logger.error("❌ STRIPE_WEBHOOK_SECRET not set - rejecting webhook")
        return None
    if not signature:
        logger.warning("⚠️ Webhook missing Stripe-Signature header")
        return None

    try:
        event = stripe.Webhook.construct_event(
            payload, signature, settings.stripe_webhook_secret
        ).to_dict()
    except stripe.SignatureVerificationError as e:
        logger.warning(f"⚠️ Webhook signature verification failed: {e}")
        return None
    except Exception as e:
        logger.warning(f"⚠️ Webhook parse error: {e}")
        return None
    return event


def _reference_account_id(event):
    obj = (event.get("data") or {}).get("object") or {}
    reference = obj.get("client_reference_id") if isinstance(obj, dict) else None
    try:
        return int(reference)
    except (TypeError, ValueError):
        return None


def handle_event(conn, settings, payload, signature):
    """Apply a verified webhook event. Returns True when the event was accepted."""
    event = verify_event(settings, payload, signature)
    if event is None:
        return False

    event_type = event.get("type")
    logger.info(f"📩 Webhook received: id={event.get('id')} type={event_type}")

    if event_type == CHECKOUT_COMPLETED:
        account_id = _reference_account_id(event)
        if account_id is None:
            logger.warning("⚠️ checkout.session.completed without a usable client_reference_id")
        elif db.set_plan(conn, account_id, db.PLAN_PRO):
            logger.info(f"⭐ Account {account_id} upgraded to pro")
        else:
            logger.warning(f"⚠️ checkout.session.completed for unknown account {account_id}")
    return True
