# -*- coding: utf-8 -*-
"""
Payment settlement coordinator.

Two-phase purchase flow:

1. create_payment_intent: guard against re-buying an owned podcast, then ask
   the processor for an intent priced from the catalog.
2. confirm_purchase: re-verify the intent with the processor and only then
   record the purchase. A client saying "it succeeded" is never enough.

Purchase insertion is idempotent per (user, podcast); a concurrent duplicate
confirmation resolves to the row that won. A payment intent settles at most
one purchase, so replaying the intent of a refunded purchase records nothing.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from podmarket.infra.log import get_logger
from podmarket.models import Podcast, Purchase, PurchaseStatus
from podmarket.schemas.checkout import ConfirmPurchaseCommand, CreatePaymentIntentCommand
from podmarket.services.credential_store import CredentialStore
from podmarket.services.entitlements import EntitlementEngine
from podmarket.services.errors import (
    NotAuthenticated,
    NotFound,
    PaymentMismatch,
    PaymentNotCompleted,
    PurchaseConflict,
    UpstreamFailure,
)
from podmarket.services.metrics import record_payment_intent, record_purchase_confirmation
from podmarket.services.payment_processor import PaymentIntent, PaymentProcessor
from podmarket.services.session_resolver import Principal

logger = get_logger('podmarket.payments')


@dataclass(frozen=True)
class IntentResult:
    client_secret: Optional[str]
    payment_intent_id: str
    amount: int
    currency: str


@dataclass(frozen=True)
class SettlementResult:
    purchase: Purchase
    created: bool


class PaymentSettlementCoordinator:

    def __init__(self, store: CredentialStore, engine: EntitlementEngine,
                 processor: PaymentProcessor, currency: str = "pln"):
        self.store = store
        self.engine = engine
        self.processor = processor
        self.currency = currency.lower()

    @staticmethod
    def _require_principal(principal: Optional[Principal]) -> Principal:
        if principal is None:
            raise NotAuthenticated()
        return principal

    def _purchasable_podcast(self, podcast_id: str) -> Podcast:
        podcast = self.store.get_podcast(podcast_id)
        if podcast is None or not podcast.is_active:
            raise NotFound("Podcast not found")
        return podcast

    def create_payment_intent(self, principal: Optional[Principal],
                              command: CreatePaymentIntentCommand) -> IntentResult:
        principal = self._require_principal(principal)

        if self.engine.has_completed_purchase(principal.user_id, command.podcast_id):
            record_payment_intent("already_purchased")
            raise PurchaseConflict()

        podcast = self._purchasable_podcast(command.podcast_id)

        try:
            intent = self.processor.create_intent(
                amount=podcast.price,
                currency=self.currency,
                metadata={"user_id": principal.user_id, "podcast_id": podcast.id},
            )
        except UpstreamFailure:
            record_payment_intent("upstream_error")
            raise

        record_payment_intent("created")
        logger.log_payment_event(
            "intent_created",
            user_id=principal.user_id,
            podcast_id=podcast.id,
            payment_intent_id=intent.id,
            amount=podcast.price,
        )
        return IntentResult(
            client_secret=intent.client_secret,
            payment_intent_id=intent.id,
            amount=podcast.price,
            currency=self.currency,
        )

    def confirm_purchase(self, principal: Optional[Principal],
                         command: ConfirmPurchaseCommand) -> SettlementResult:
        principal = self._require_principal(principal)

        existing = self.store.get_completed_purchase(principal.user_id, command.podcast_id)
        if existing is not None:
            record_purchase_confirmation("already_recorded")
            return SettlementResult(purchase=existing, created=False)

        podcast = self.store.get_podcast(command.podcast_id)
        if podcast is None:
            raise NotFound("Podcast not found")

        try:
            intent = self.processor.retrieve_intent(command.payment_intent_id)
        except UpstreamFailure:
            record_purchase_confirmation("upstream_error")
            raise

        return self._settle(principal.user_id, podcast, intent)

    def reconcile_intent(self, payment_intent_id: str) -> Optional[SettlementResult]:
        """
        Record the purchase behind a succeeded intent using only the
        processor's own metadata. Entry point for recovering confirmations
        lost to a client disconnect; nothing schedules it yet.
        """
        intent = self.processor.retrieve_intent(payment_intent_id)
        user_id = intent.metadata.get("user_id")
        podcast_id = intent.metadata.get("podcast_id")
        if not user_id or not podcast_id:
            logger.warning("Intent without purchase metadata", payment_intent_id=payment_intent_id)
            return None
        podcast = self.store.get_podcast(podcast_id)
        if podcast is None or self.store.get_user(user_id) is None:
            logger.warning("Intent references unknown user or podcast",
                           payment_intent_id=payment_intent_id, user_id=user_id, podcast_id=podcast_id)
            return None
        return self._settle(user_id, podcast, intent)

    def _settle(self, user_id: str, podcast: Podcast, intent: PaymentIntent) -> SettlementResult:
        if not intent.succeeded:
            record_purchase_confirmation("not_succeeded")
            logger.log_payment_event(
                "confirmation_rejected",
                user_id=user_id,
                podcast_id=podcast.id,
                payment_intent_id=intent.id,
                intent_status=intent.status,
            )
            raise PaymentNotCompleted()

        if (intent.metadata.get("user_id") != user_id
                or intent.metadata.get("podcast_id") != podcast.id
                or intent.currency != self.currency):
            record_purchase_confirmation("mismatch")
            logger.log_security_event(
                "payment_intent_mismatch",
                severity='warning',
                user_id=user_id,
                podcast_id=podcast.id,
                payment_intent_id=intent.id,
            )
            raise PaymentMismatch()

        # one payment settles at most one purchase, whatever that row's status is now
        prior = self.store.get_purchase_by_payment_reference(intent.id)
        if prior is not None:
            record_purchase_confirmation("already_recorded")
            if prior.status != PurchaseStatus.COMPLETED:
                logger.log_security_event(
                    "payment_intent_reused",
                    severity='warning',
                    user_id=user_id,
                    podcast_id=podcast.id,
                    payment_intent_id=intent.id,
                    purchase_id=prior.id,
                    purchase_status=prior.status,
                )
            return SettlementResult(purchase=prior, created=False)

        purchase, created = self.store.insert_completed_purchase(
            user_id=user_id,
            podcast_id=podcast.id,
            amount=intent.amount,
            payment_reference=intent.id,
        )
        record_purchase_confirmation("recorded" if created else "already_recorded")
        logger.log_payment_event(
            "purchase_recorded" if created else "purchase_already_recorded",
            user_id=user_id,
            podcast_id=podcast.id,
            payment_intent_id=intent.id,
            purchase_id=purchase.id,
            amount=purchase.amount,
        )
        return SettlementResult(purchase=purchase, created=created)
