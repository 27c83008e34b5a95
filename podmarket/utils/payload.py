# -*- coding: utf-8 -*-
from flask import request


def json_body() -> dict:
    """Safely parse JSON body or return empty dict."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def parse_body(model):
    """Validate the JSON body into `model`; pydantic errors surface as 400."""
    return model.model_validate(json_body())
