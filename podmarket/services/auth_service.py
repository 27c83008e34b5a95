# -*- coding: utf-8 -*-
"""
Account service: registration, login, email verification and password reset.

Tokens are random, single-use, and persisted only as SHA-256 digests. A user
holds at most one live reset token; requesting a new one replaces it.
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable, Optional

from werkzeug.security import check_password_hash, generate_password_hash

from podmarket.infra.log import get_logger
from podmarket.models import User
from podmarket.schemas.auth import LoginCommand, RegisterCommand, ResetPasswordCommand
from podmarket.services.credential_store import CredentialStore
from podmarket.services.emailer import EmailSender, password_reset_message, verification_message
from podmarket.services.errors import Conflict, NotAuthenticated, ValidationFailed
from podmarket.services.session_resolver import SessionResolver
from podmarket.utils.security import generate_token, hash_token, utcnow

logger = get_logger('podmarket.auth')

VERIFICATION_TTL = timedelta(hours=24)
RESET_TTL = timedelta(hours=1)

# compared against when the email is unknown, so both failure paths hash once
_DUMMY_HASH = generate_password_hash("podmarket-dummy-password")


class AccountService:

    def __init__(self, store: CredentialStore, sessions: SessionResolver, email: EmailSender,
                 frontend_origin: str, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.sessions = sessions
        self.email = email
        self.frontend_origin = frontend_origin.rstrip("/")
        self.clock = clock

    def register(self, command: RegisterCommand) -> User:
        if self.store.get_user_by_email(command.email) is not None:
            raise Conflict("An account with this email already exists")

        token = generate_token()
        user = self.store.create_user({
            "email": command.email,
            "password_hash": generate_password_hash(command.password),
            "first_name": command.first_name,
            "last_name": command.last_name,
            "email_verification_token": hash_token(token),
            "email_verification_expires": self.clock() + VERIFICATION_TTL,
        })
        logger.log_auth_event("register", True, user_id=user.id)

        link = f"{self.frontend_origin}/verify-email?token={token}"
        if not self.email.send(user.email, *verification_message(user.display_name, link)):
            logger.warning("Verification email not sent", user_id=user.id)
        return user

    def authenticate(self, command: LoginCommand) -> User:
        user = self.store.get_user_by_email(command.email)
        if user is None:
            check_password_hash(_DUMMY_HASH, command.password)
            logger.log_auth_event("login", False, failure_reason="unknown_email")
            raise NotAuthenticated("Invalid email or password")
        if not check_password_hash(user.password_hash, command.password):
            logger.log_auth_event("login", False, user_id=user.id, failure_reason="bad_password")
            raise NotAuthenticated("Invalid email or password")
        logger.log_auth_event("login", True, user_id=user.id)
        return user

    def login(self, command: LoginCommand) -> tuple:
        """Authenticate and open a session. Returns (user, session_id)."""
        user = self.authenticate(command)
        return user, self.sessions.open_session(user.id)

    def logout(self, session_id: Optional[str]) -> None:
        self.sessions.close_session(session_id)

    def verify_email(self, token: str) -> User:
        token_hash = hash_token(token)
        user = self.store.get_user_by_verification_token(token_hash)
        if user is None:
            raise ValidationFailed("Invalid verification token")
        if not user.email_verification_expires or user.email_verification_expires < self.clock():
            raise ValidationFailed("Verification token expired")

        updated = self.store.update_user(
            user.id,
            {"is_email_verified": True, "email_verification_token": None, "email_verification_expires": None},
            expected={"email_verification_token": token_hash},
        )
        if updated is None:
            raise ValidationFailed("Invalid verification token")
        logger.log_auth_event("verify_email", True, user_id=user.id)
        return updated

    def request_password_reset(self, email: str) -> None:
        """Issue a reset token if the account exists. Silent otherwise."""
        user = self.store.get_user_by_email(email)
        if user is None:
            logger.info("Password reset requested for unknown email")
            return

        token = generate_token()
        self.store.update_user(user.id, {
            "password_reset_token": hash_token(token),
            "password_reset_expires": self.clock() + RESET_TTL,
        })
        link = f"{self.frontend_origin}/reset-password?token={token}"
        if not self.email.send(user.email, *password_reset_message(user.display_name, link)):
            logger.warning("Password reset email not sent", user_id=user.id)

    def reset_password(self, command: ResetPasswordCommand) -> User:
        token_hash = hash_token(command.token)
        user = self.store.get_user_by_reset_token(token_hash)
        if user is None:
            raise ValidationFailed("Invalid password reset token")
        if not user.password_reset_expires or user.password_reset_expires < self.clock():
            raise ValidationFailed("Password reset token expired")

        updated = self.store.update_user(
            user.id,
            {
                "password_hash": generate_password_hash(command.password),
                "password_reset_token": None,
                "password_reset_expires": None,
            },
            expected={"password_reset_token": token_hash},
        )
        if updated is None:
            # consumed concurrently
            raise ValidationFailed("Invalid password reset token")

        revoked = self.sessions.revoke_all(user.id)
        logger.log_auth_event("password_reset", True, user_id=user.id, sessions_revoked=revoked)
        return updated

    def set_admin(self, user_id: str, is_admin: bool) -> Optional[User]:
        user = self.store.update_user(user_id, {"is_admin": is_admin})
        if user is not None:
            logger.log_security_event(
                "admin_granted" if is_admin else "admin_revoked", severity='warning', user_id=user_id)
        return user
