# -*- coding: utf-8 -*-
"""
Payment processor adapter.

The settlement coordinator only needs two calls: create an intent and
retrieve one. `StripePaymentProcessor` maps them onto Stripe PaymentIntents;
tests provide their own implementation of `PaymentProcessor`.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Optional

import stripe

from podmarket.infra.log import get_logger
from podmarket.services.errors import UpstreamFailure

logger = get_logger('podmarket.payments')

INTENT_SUCCEEDED = "succeeded"


@dataclass(frozen=True)
class PaymentIntent:
    id: str
    status: str
    amount: int
    currency: str
    client_secret: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == INTENT_SUCCEEDED


class PaymentProcessor(ABC):

    @abstractmethod
    def create_intent(self, amount: int, currency: str, metadata: Dict[str, str]) -> PaymentIntent:
        """Create a payment intent. Raises UpstreamFailure."""

    @abstractmethod
    def retrieve_intent(self, intent_id: str) -> PaymentIntent:
        """Fetch the processor's current view of an intent. Raises UpstreamFailure."""


class StripePaymentProcessor(PaymentProcessor):

    def __init__(self, api_key: str):
        self.api_key = (api_key or "").strip()

    def _require_key(self):
        if not self.api_key:
            logger.error("STRIPE_SECRET_KEY missing")
            raise UpstreamFailure("STRIPE_SECRET_KEY missing")

    @staticmethod
    def _field(obj, name, default=None):
        try:
            return obj[name]
        except (KeyError, TypeError):
            return getattr(obj, name, default)

    def _to_intent(self, obj) -> PaymentIntent:
        metadata = self._field(obj, "metadata") or {}
        return PaymentIntent(
            id=self._field(obj, "id"),
            status=self._field(obj, "status"),
            amount=int(self._field(obj, "amount", 0)),
            currency=str(self._field(obj, "currency", "")).lower(),
            client_secret=self._field(obj, "client_secret"),
            metadata={str(k): str(v) for k, v in metadata.items()},
        )

    def create_intent(self, amount: int, currency: str, metadata: Dict[str, str]) -> PaymentIntent:
        self._require_key()
        try:
            intent = stripe.PaymentIntent.create(
                api_key=self.api_key,
                amount=amount,
                currency=currency,
                metadata=metadata,
                automatic_payment_methods={"enabled": True},
            )
        except stripe.StripeError as e:
            msg = getattr(e, "user_message", None) or str(e)
            logger.error(f"Stripe error creating payment intent: {msg}", amount=amount, currency=currency)
            raise UpstreamFailure(msg)
        result = self._to_intent(intent)
        logger.log_payment_event("intent_created", payment_intent_id=result.id, amount=amount)
        return result

    def retrieve_intent(self, intent_id: str) -> PaymentIntent:
        self._require_key()
        try:
            intent = stripe.PaymentIntent.retrieve(intent_id, api_key=self.api_key)
        except stripe.InvalidRequestError as e:
            # unknown intent id: treat as an intent that never succeeded
            logger.warning(f"Stripe rejected intent lookup: {e}", payment_intent_id=intent_id)
            return PaymentIntent(id=intent_id, status="not_found", amount=0, currency="")
        except stripe.StripeError as e:
            msg = getattr(e, "user_message", None) or str(e)
            logger.error(f"Stripe error retrieving payment intent: {msg}", payment_intent_id=intent_id)
            raise UpstreamFailure(msg)
        return self._to_intent(intent)
