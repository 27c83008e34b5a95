# -*- coding: utf-8 -*-
"""
Two-phase checkout: create a payment intent, then confirm the purchase once
the processor reports success.
"""
from flask import Blueprint, jsonify

from podmarket.infra.auth import current_principal, require_auth
from podmarket.schemas.checkout import ConfirmPurchaseCommand, CreatePaymentIntentCommand
from podmarket.services.container import get_services
from podmarket.utils.payload import parse_body

checkout_bp = Blueprint("checkout", __name__, url_prefix="/api")


@checkout_bp.route("/create-payment-intent", methods=["POST"])
@require_auth
def create_payment_intent():
    command = parse_body(CreatePaymentIntentCommand)
    result = get_services().settlement.create_payment_intent(current_principal(), command)
    return jsonify({
        "client_secret": result.client_secret,
        "payment_intent_id": result.payment_intent_id,
        "amount": result.amount,
        "currency": result.currency,
    }), 200


@checkout_bp.route("/purchases", methods=["POST"])
@require_auth
def confirm_purchase():
    command = parse_body(ConfirmPurchaseCommand)
    result = get_services().settlement.confirm_purchase(current_principal(), command)
    return jsonify({
        "purchase": result.purchase.to_dict(),
        "created": result.created,
    }), 201 if result.created else 200
