"""
Test suite for health, readiness and metrics endpoints.
"""

from unittest.mock import patch

from sqlalchemy.exc import OperationalError


class TestHealthEndpoint:
    """Test /healthz endpoint functionality."""

    def test_health_endpoint_always_returns_200(self, client):
        response = client.get('/healthz')
        assert response.status_code == 200

    def test_health_endpoint_response_format(self, client):
        data = client.get('/healthz').get_json()
        assert data['status'] == 'healthy'
        assert data['service'] == 'podmarket'
        assert isinstance(data['timestamp'], float)

    def test_health_ignores_session_cookie(self, client, app):
        client.set_cookie(app.config["SESSION_COOKIE"], "garbage")
        assert client.get('/healthz').status_code == 200


class TestReadinessEndpoint:
    """Test /readyz endpoint functionality."""

    def test_ready_with_database(self, client):
        response = client.get('/readyz')
        assert response.status_code == 200
        assert response.get_json()['checks']['database'] is True

    def test_not_ready_when_database_fails(self, client):
        with patch('podmarket.routes.health.db.session.execute',
                   side_effect=OperationalError("SELECT 1", {}, Exception("down"))):
            response = client.get('/readyz')

        assert response.status_code == 503
        data = response.get_json()
        assert data['status'] == 'not_ready'
        assert data['checks']['database'] is False


class TestMetricsEndpoint:
    """Test /metrics exposition."""

    def test_metrics_format(self, client):
        client.get('/healthz')
        response = client.get('/metrics')

        assert response.status_code == 200
        assert response.headers['Content-Type'].startswith('text/plain')
        assert b'podmarket_http_requests_total' in response.data

    def test_access_decisions_are_counted(self, client, stored_audio):
        stored_audio()
        client.get('/objects/uploads/P1')

        body = client.get('/metrics').get_data(as_text=True)
        assert 'podmarket_entitlement_decisions_total' in body
        assert 'reason="unauthenticated"' in body

    def test_metrics_disabled(self, processor, mailer, object_store, tmp_path):
        from podmarket.factory import create_app

        app = create_app(
            {
                "TESTING": True,
                "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'metrics.db'}",
                "METRICS_ENABLED": False,
            },
            payment_processor=processor,
            object_store=object_store,
            email_sender=mailer,
        )
        assert app.test_client().get('/metrics').status_code == 404
