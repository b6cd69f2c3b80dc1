"""Tests for the workflow runner service main application."""

import pytest
from fastapi import FastAPI

from app.main import create_app


class TestRunnerApp:
    """Test the workflow runner FastAPI application."""

    def test_creates_fastapi_instance(self):
        """Test that create_app returns a FastAPI instance."""
        app = create_app()
        assert isinstance(app, FastAPI)

    def test_health_endpoint_returns_correct_service_name(self, client, test_settings):
        """Test health endpoint returns the configured service name."""
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["service"] == test_settings.app_name
        assert data["workflow"] == test_settings.workflow_name

    def test_app_with_runner_configuration(self, test_settings):
        """Test that app can be configured with runner settings."""
        assert test_settings.time_scale == 0.0
        assert test_settings.require_inputs is False

        app = create_app(test_settings)
        assert app.title == test_settings.app_name

    def test_routes_registered(self, app):
        """The workflow router is mounted under its API prefix."""
        paths = app.openapi()["paths"]

        assert "post" in paths["/api/v1/workflow/run"]
        assert "get" in paths["/api/v1/workflow/status"]
        assert "post" in paths["/api/v1/workflow/resume/{index}"]
        assert "delete" in paths["/api/v1/workflow/files/{name}"]

    def test_cors_configuration(self, client):
        """Test CORS configuration allows requests."""
        response = client.options("/health", headers={
            "Origin": "http://localhost:3000",
            "Access-Control-Request-Method": "GET"
        })

        # Should handle preflight request
        assert response.status_code in [200, 204]

    def test_error_handling(self, client):
        """Test that the app handles errors gracefully."""
        response = client.get("/nonexistent-endpoint")
        assert response.status_code == 404

    def test_health_endpoint_concurrent_access(self, client):
        """Test health endpoint under concurrent access."""
        import threading

        results = []
        errors = []

        def make_request():
            try:
                response = client.get("/health")
                results.append(response.status_code)
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=make_request) for _ in range(5)]

        for thread in threads:
            thread.start()

        for thread in threads:
            thread.join()

        assert len(errors) == 0
        assert all(status == 200 for status in results)

    @pytest.mark.performance
    def test_health_endpoint_performance(self, client):
        """Test health endpoint response time."""
        import time

        times = []
        for _ in range(10):
            start = time.perf_counter()
            response = client.get("/health")
            end = time.perf_counter()

            assert response.status_code == 200
            times.append(end - start)

        avg_time = sum(times) / len(times)
        assert avg_time < 0.05  # Less than 50ms average
