# -*- coding: utf-8 -*-
"""
Per-app wiring of the core services.

Built once by the app factory and stored in app.extensions['podmarket'].
Collaborators with external side effects (payment processor, object store,
email sender) can be injected; otherwise they are built from config.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from flask import current_app

from podmarket.services.auth_service import AccountService
from podmarket.services.catalog import CatalogService
from podmarket.services.credential_store import CredentialStore, SqlCredentialStore
from podmarket.services.emailer import EmailLabsSender, EmailSender
from podmarket.services.entitlements import EntitlementEngine
from podmarket.services.object_storage import ObjectStore, build_object_store
from podmarket.services.payment_processor import PaymentProcessor, StripePaymentProcessor
from podmarket.services.session_resolver import SessionResolver
from podmarket.services.settlement import PaymentSettlementCoordinator


@dataclass
class ServiceContainer:
    store: CredentialStore
    objects: ObjectStore
    processor: PaymentProcessor
    email: EmailSender
    sessions: SessionResolver
    engine: EntitlementEngine
    settlement: PaymentSettlementCoordinator
    accounts: AccountService
    catalog: CatalogService


def build_services(config, *, store: Optional[CredentialStore] = None,
                   payment_processor: Optional[PaymentProcessor] = None,
                   object_store: Optional[ObjectStore] = None,
                   email_sender: Optional[EmailSender] = None) -> ServiceContainer:
    store = store or SqlCredentialStore()
    objects = object_store or build_object_store(config)
    processor = payment_processor or StripePaymentProcessor(config.get("STRIPE_SECRET_KEY"))
    email = email_sender or EmailLabsSender(
        app_key=config.get("EMAILLABS_APP_KEY"),
        secret_key=config.get("EMAILLABS_SECRET_KEY"),
        from_email=config.get("EMAILLABS_FROM_EMAIL"),
        from_name=config.get("EMAILLABS_FROM_NAME", "PodMarket"),
        smtp_account=config.get("EMAILLABS_SMTP_ACCOUNT", "1.default.smtp"),
    )

    sessions = SessionResolver(store, ttl_hours=int(config.get("SESSION_TTL_HOURS", 24 * 7)))
    engine = EntitlementEngine(store, objects)
    return ServiceContainer(
        store=store,
        objects=objects,
        processor=processor,
        email=email,
        sessions=sessions,
        engine=engine,
        settlement=PaymentSettlementCoordinator(
            store, engine, processor, currency=config.get("PAYMENT_CURRENCY", "pln")),
        accounts=AccountService(store, sessions, email, config.get("FRONTEND_ORIGIN", "")),
        catalog=CatalogService(store, objects),
    )


def get_services() -> ServiceContainer:
    return current_app.extensions['podmarket']
