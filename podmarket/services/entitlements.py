# -*- coding: utf-8 -*-
"""
Entitlement engine.

Decides whether a principal may perform a permission on a stored object by
combining two sources of truth:

1. the ACL policy stored with the object (public flag, owner, user rules)
2. completed purchases of the podcast the object belongs to

Default deny: every grant has an explicit allow path below. The principal
is always the server-resolved one; nothing from the request body is trusted.

The same `has_completed_purchase` predicate backs the checkout duplicate
guard and the download check, so the two can never disagree.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from podmarket.infra.log import get_logger
from podmarket.services.credential_store import CredentialStore
from podmarket.services.errors import NotAuthenticated, NotAuthorized, ObjectNotFound
from podmarket.services.metrics import record_entitlement_decision
from podmarket.services.object_acl import ObjectPermission, normalize_object_path
from podmarket.services.object_storage import ObjectStore
from podmarket.services.session_resolver import Principal

logger = get_logger('podmarket.entitlements')


class DecisionReason:
    PUBLIC = "public"
    OWNER = "owner"
    ADMIN = "admin"
    ACL_RULE = "acl_rule"
    PURCHASE = "purchase"
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    reason: str
    object_path: str
    permission: ObjectPermission
    podcast_id: Optional[str] = None


class EntitlementEngine:

    def __init__(self, store: CredentialStore, objects: ObjectStore):
        self.store = store
        self.objects = objects

    def has_completed_purchase(self, user_id: str, podcast_id: str) -> bool:
        """True iff a completed purchase exists for (user_id, podcast_id)."""
        if not user_id or not podcast_id:
            return False
        return self.store.completed_purchase_exists(user_id, podcast_id)

    def check(self, principal: Optional[Principal], object_path: str,
              permission: ObjectPermission = ObjectPermission.READ) -> AccessDecision:
        """
        Decide access to `object_path`.

        Raises ObjectNotFound when the path is invalid or carries no ACL, for
        every caller alike, so existence is never revealed by the error kind.
        """
        canonical = normalize_object_path(object_path)
        if canonical is None:
            raise ObjectNotFound()

        acl = self.objects.get_acl(canonical)

        if permission is ObjectPermission.READ and acl.is_public_readable():
            return self._decide(principal, canonical, permission, True, DecisionReason.PUBLIC)

        if principal is None:
            return self._decide(principal, canonical, permission, False, DecisionReason.UNAUTHENTICATED)

        if acl.is_owner(principal.user_id):
            return self._decide(principal, canonical, permission, True, DecisionReason.OWNER)

        if principal.is_admin:
            return self._decide(principal, canonical, permission, True, DecisionReason.ADMIN)

        if acl.grants(principal.user_id, permission):
            return self._decide(principal, canonical, permission, True, DecisionReason.ACL_RULE)

        if permission is ObjectPermission.READ:
            podcast = self.store.get_podcast_by_audio_path(canonical)
            if podcast is not None and self.has_completed_purchase(principal.user_id, podcast.id):
                return self._decide(principal, canonical, permission, True,
                                    DecisionReason.PURCHASE, podcast_id=podcast.id)

        return self._decide(principal, canonical, permission, False, DecisionReason.FORBIDDEN)

    def can_access(self, principal: Optional[Principal], object_path: str,
                   permission: ObjectPermission = ObjectPermission.READ) -> bool:
        return self.check(principal, object_path, permission).allowed

    def enforce(self, principal: Optional[Principal], object_path: str,
                permission: ObjectPermission = ObjectPermission.READ) -> AccessDecision:
        """Like check(), but a denial raises NotAuthenticated or NotAuthorized."""
        decision = self.check(principal, object_path, permission)
        if decision.allowed:
            return decision
        if decision.reason == DecisionReason.UNAUTHENTICATED:
            raise NotAuthenticated()
        raise NotAuthorized()

    def _decide(self, principal: Optional[Principal], path: str, permission: ObjectPermission,
                allowed: bool, reason: str, podcast_id: Optional[str] = None) -> AccessDecision:
        record_entitlement_decision(permission.value, allowed, reason)
        logger.log_access_decision(
            path, permission.value, allowed, reason,
            user_id=principal.user_id if principal else None,
        )
        return AccessDecision(allowed=allowed, reason=reason, object_path=path,
                              permission=permission, podcast_id=podcast_id)
