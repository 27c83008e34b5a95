# -*- coding: utf-8 -*-
"""
Protected object downloads.

Every request goes through the entitlement engine before a single byte is
read from storage. Content is streamed in chunks.
"""
from flask import Blueprint, Response, stream_with_context

from podmarket.infra.auth import current_principal
from podmarket.services.container import get_services
from podmarket.services.entitlements import DecisionReason
from podmarket.services.object_acl import OBJECT_PATH_PREFIX, ObjectPermission

objects_bp = Blueprint("objects", __name__)

CACHE_TTL_SECONDS = 3600


@objects_bp.route("/objects/<path:object_path>", methods=["GET"])
def download_object(object_path):
    services = get_services()
    decision = services.engine.enforce(
        current_principal(), OBJECT_PATH_PREFIX + object_path, ObjectPermission.READ)
    stored = services.objects.open(decision.object_path)

    visibility = "public" if decision.reason == DecisionReason.PUBLIC else "private"
    headers = {"Cache-Control": f"{visibility}, max-age={CACHE_TTL_SECONDS}"}
    if stored.size is not None:
        headers["Content-Length"] = str(stored.size)

    return Response(
        stream_with_context(stored.chunks),
        status=200,
        content_type=stored.content_type,
        headers=headers,
    )
