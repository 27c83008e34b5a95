# -*- coding: utf-8 -*-
"""
Service for managing Prometheus metrics.

Each app gets its own CollectorRegistry so several app instances (tests,
workers) never collide on metric registration.
"""

import time
from typing import Optional
from flask import Flask, request, g, current_app, has_app_context
from prometheus_client import CollectorRegistry, Counter, Histogram
from prometheus_client.exposition import generate_latest


def init_metrics(app: Flask) -> None:
    """Initialize metrics service and the /metrics endpoint."""
    service = MetricsService(enabled=app.config.get("METRICS_ENABLED", True))
    app.extensions['metrics'] = service

    if service.enabled:
        @app.before_request
        def _metrics_start():
            g.metrics_start_time = time.time()

        @app.after_request
        def _metrics_record(response):
            started = getattr(g, 'metrics_start_time', None)
            if started is not None:
                endpoint = request.url_rule.rule if request.url_rule else "unmatched"
                service.record_http_request(
                    route=endpoint,
                    method=request.method,
                    status_code=response.status_code,
                    duration_seconds=time.time() - started
                )
            return response

        @app.route("/metrics")
        def metrics():
            return generate_latest(service.registry), 200, {
                'Content-Type': 'text/plain; version=0.0.4; charset=utf-8'}


def get_metrics_service() -> Optional['MetricsService']:
    """Get the metrics service instance from the current app context."""
    if has_app_context():
        return current_app.extensions.get('metrics')
    return None


class MetricsService:
    """Service for managing Prometheus metrics."""

    def __init__(self, registry: Optional[CollectorRegistry] = None, enabled: bool = True):
        self.enabled = enabled
        self.registry = registry if registry is not None else CollectorRegistry()

        if self.enabled:
            self.http_requests_total = Counter(
                "podmarket_http_requests_total",
                "Total number of HTTP requests.",
                ["route", "method", "status"],
                registry=self.registry
            )
            self.http_request_duration_seconds = Histogram(
                "podmarket_http_request_duration_seconds",
                "Duration of HTTP requests in seconds.",
                ["route", "method"],
                registry=self.registry
            )
            self.entitlement_decisions_total = Counter(
                "podmarket_entitlement_decisions_total",
                "Object access decisions by outcome and reason.",
                ["permission", "allowed", "reason"],
                registry=self.registry
            )
            self.payment_intents_total = Counter(
                "podmarket_payment_intents_total",
                "Payment intent creation attempts by outcome.",
                ["outcome"],
                registry=self.registry
            )
            self.purchase_confirmations_total = Counter(
                "podmarket_purchase_confirmations_total",
                "Purchase confirmation attempts by outcome.",
                ["outcome"],
                registry=self.registry
            )

    def record_http_request(self, route: str, method: str, status_code: int, duration_seconds: float):
        if not self.enabled:
            return
        self.http_requests_total.labels(route=route, method=method, status=str(status_code)).inc()
        self.http_request_duration_seconds.labels(route=route, method=method).observe(duration_seconds)

    def record_entitlement_decision(self, permission: str, allowed: bool, reason: str):
        if not self.enabled:
            return
        self.entitlement_decisions_total.labels(
            permission=permission, allowed=str(allowed).lower(), reason=reason).inc()

    def record_payment_intent(self, outcome: str):
        if not self.enabled:
            return
        self.payment_intents_total.labels(outcome=outcome).inc()

    def record_purchase_confirmation(self, outcome: str):
        if not self.enabled:
            return
        self.purchase_confirmations_total.labels(outcome=outcome).inc()


def record_entitlement_decision(permission: str, allowed: bool, reason: str):
    """Record an access decision on the current app's metrics, if any."""
    service = get_metrics_service()
    if service:
        service.record_entitlement_decision(permission, allowed, reason)


def record_payment_intent(outcome: str):
    service = get_metrics_service()
    if service:
        service.record_payment_intent(outcome)


def record_purchase_confirmation(outcome: str):
    service = get_metrics_service()
    if service:
        service.record_purchase_confirmation(outcome)
