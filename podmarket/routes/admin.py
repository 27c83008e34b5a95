# -*- coding: utf-8 -*-
"""
Admin API: catalog management, admin grants and audio uploads.
"""
from flask import Blueprint, jsonify, request

from podmarket.infra.auth import current_principal, require_admin
from podmarket.schemas.catalog import (
    CreateCategoryCommand,
    CreatePodcastCommand,
    SetAdminCommand,
    UpdatePodcastCommand,
    UploadObjectCommand,
)
from podmarket.services.container import get_services
from podmarket.services.errors import NotFound, ValidationFailed
from podmarket.utils.payload import parse_body

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.route("/podcasts", methods=["GET"])
@require_admin
def list_podcasts():
    podcasts = get_services().catalog.list_all_podcasts(current_principal())
    return jsonify([p.to_dict(include_category=True) for p in podcasts]), 200


@admin_bp.route("/podcasts", methods=["POST"])
@require_admin
def create_podcast():
    command = parse_body(CreatePodcastCommand)
    podcast = get_services().catalog.create_podcast(current_principal(), command)
    return jsonify(podcast.to_dict(include_category=True)), 201


@admin_bp.route("/podcasts/<podcast_id>", methods=["PUT"])
@require_admin
def update_podcast(podcast_id):
    command = parse_body(UpdatePodcastCommand)
    podcast = get_services().catalog.update_podcast(current_principal(), podcast_id, command)
    return jsonify(podcast.to_dict(include_category=True)), 200


@admin_bp.route("/podcasts/<podcast_id>", methods=["DELETE"])
@require_admin
def delete_podcast(podcast_id):
    get_services().catalog.delete_podcast(current_principal(), podcast_id)
    return jsonify({"message": "Podcast deleted"}), 200


@admin_bp.route("/categories", methods=["POST"])
@require_admin
def create_category():
    command = parse_body(CreateCategoryCommand)
    category = get_services().catalog.create_category(current_principal(), command)
    return jsonify(category.to_dict()), 201


@admin_bp.route("/users/<user_id>/admin", methods=["POST"])
@require_admin
def set_admin(user_id):
    command = parse_body(SetAdminCommand)
    user = get_services().accounts.set_admin(user_id, command.is_admin)
    if user is None:
        raise NotFound("User not found")
    return jsonify(user.to_dict()), 200


@admin_bp.route("/objects", methods=["POST"])
@require_admin
def upload_object():
    """Multipart upload: `file` plus optional `visibility` and `podcast_id` fields."""
    upload = request.files.get("file")
    if upload is None or not upload.filename:
        raise ValidationFailed("A file is required", field="file")

    fields = {k: v for k, v in request.form.items() if k in ("visibility", "podcast_id") and v}
    command = UploadObjectCommand.model_validate(fields)
    path = get_services().catalog.upload_object(
        current_principal(), upload.stream, upload.mimetype, command)
    return jsonify({"object_path": path}), 201
