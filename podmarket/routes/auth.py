# -*- coding: utf-8 -*-
"""
Account endpoints: register, login/logout, current user, email
verification and password reset. Sessions travel in an HttpOnly cookie.
"""
from flask import Blueprint, current_app, g, jsonify

from podmarket.infra.auth import current_principal, require_auth
from podmarket.schemas.auth import (
    ForgotPasswordCommand,
    LoginCommand,
    RegisterCommand,
    ResetPasswordCommand,
    VerifyEmailCommand,
)
from podmarket.services.container import get_services
from podmarket.services.errors import NotFound
from podmarket.services.rate_limiter import auth_rate_limit, limiter
from podmarket.utils.payload import parse_body

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _set_session_cookie(response, session_id: str):
    cfg = current_app.config
    response.set_cookie(
        cfg["SESSION_COOKIE"],
        session_id,
        max_age=int(cfg.get("SESSION_TTL_HOURS", 24 * 7)) * 3600,
        httponly=True,
        secure=cfg.get("SESSION_COOKIE_SECURE_FLAG", True),
        samesite="Lax",
        path="/",
    )


@auth_bp.route("/register", methods=["POST"])
@limiter.limit(auth_rate_limit)
def register():
    command = parse_body(RegisterCommand)
    user = get_services().accounts.register(command)
    return jsonify({
        "user": user.to_dict(),
        "message": "Registration successful. Check your email to verify your account.",
    }), 201


@auth_bp.route("/login", methods=["POST"])
@limiter.limit(auth_rate_limit)
def login():
    command = parse_body(LoginCommand)
    user, session_id = get_services().accounts.login(command)
    response = jsonify({"user": user.to_dict()})
    _set_session_cookie(response, session_id)
    return response, 200


@auth_bp.route("/logout", methods=["POST"])
def logout():
    get_services().accounts.logout(getattr(g, "session_id", None))
    response = jsonify({"message": "Logged out"})
    response.delete_cookie(current_app.config["SESSION_COOKIE"], path="/")
    return response, 200


@auth_bp.route("/user", methods=["GET"])
@require_auth
def get_user():
    user = get_services().store.get_user(current_principal().user_id)
    if user is None:
        raise NotFound("User not found")
    return jsonify(user.to_dict()), 200


@auth_bp.route("/verify-email", methods=["POST"])
def verify_email():
    command = parse_body(VerifyEmailCommand)
    user = get_services().accounts.verify_email(command.token)
    return jsonify({"user": user.to_dict(), "message": "Email verified"}), 200


@auth_bp.route("/forgot-password", methods=["POST"])
@limiter.limit(auth_rate_limit)
def forgot_password():
    command = parse_body(ForgotPasswordCommand)
    get_services().accounts.request_password_reset(command.email)
    # identical answer whether or not the account exists
    return jsonify({"message": "If the account exists, a reset link has been sent."}), 200


@auth_bp.route("/reset-password", methods=["POST"])
@limiter.limit(auth_rate_limit)
def reset_password():
    command = parse_body(ResetPasswordCommand)
    get_services().accounts.reset_password(command)
    response = jsonify({"message": "Password updated. Please log in again."})
    response.delete_cookie(current_app.config["SESSION_COOKIE"], path="/")
    return response, 200
