# -*- coding: utf-8 -*-
from flask import Blueprint, jsonify

from podmarket.infra.auth import current_principal, require_auth
from podmarket.services.container import get_services

library_bp = Blueprint("library", __name__, url_prefix="/api")


@library_bp.route("/user/purchases", methods=["GET"])
@require_auth
def user_purchases():
    """Purchases of the signed-in user, newest first, with podcast details."""
    purchases = get_services().store.list_user_purchases(current_principal().user_id)
    return jsonify([p.to_dict(include_podcast=True) for p in purchases]), 200


@library_bp.route("/podcasts/<podcast_id>/ownership", methods=["GET"])
@require_auth
def podcast_ownership(podcast_id):
    services = get_services()
    owned = services.engine.has_completed_purchase(current_principal().user_id, podcast_id)
    return jsonify({"podcast_id": podcast_id, "owned": owned}), 200
