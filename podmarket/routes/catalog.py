# -*- coding: utf-8 -*-
from flask import Blueprint, jsonify

from podmarket.services.container import get_services

catalog_bp = Blueprint("catalog", __name__, url_prefix="/api")


@catalog_bp.route("/categories", methods=["GET"])
def list_categories():
    categories = get_services().catalog.list_categories()
    return jsonify([c.to_dict() for c in categories]), 200


@catalog_bp.route("/categories/<slug>/podcasts", methods=["GET"])
def category_podcasts(slug):
    podcasts = get_services().catalog.podcasts_in_category(slug)
    return jsonify([p.to_dict(include_category=True) for p in podcasts]), 200


@catalog_bp.route("/podcasts/<slug>", methods=["GET"])
def podcast_by_slug(slug):
    podcast = get_services().catalog.podcast_by_slug(slug)
    return jsonify(podcast.to_dict(include_category=True)), 200


@catalog_bp.route("/podcasts/by-id/<podcast_id>", methods=["GET"])
def podcast_by_id(podcast_id):
    podcast = get_services().catalog.podcast_by_id(podcast_id)
    return jsonify(podcast.to_dict(include_category=True)), 200
