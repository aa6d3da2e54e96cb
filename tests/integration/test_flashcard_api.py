"""
Integration tests for the assembled flashcard API.

Runs the middleware chain, dispatcher, mount and handler together through
FastAPI TestClient, with the inference backend replaced by a recording stub.

Tests cover:
- Routing (home, flashcard root, prefix redirect, catch-alls)
- Flashcard creation happy path and outbound payload
- Method, body, encoding and backend failures with their status codes
- Authenticator enabled and disabled
- Logging of rejected requests
- Health and metrics endpoints, and bounded request metric labels
"""

import json
import socket

import pytest
from prometheus_client import REGISTRY
from starlette.requests import ClientDisconnect, Request
from structlog.testing import capture_logs

from api.src.errors import BackendUnavailableError, EncodingError
from api.src.services.prompt_builder import build_prompt
from shared.metrics import get_flashcard_metrics

CREATE_PATH = "/api/flash_card/create"

BENKYOU_CARD = json.dumps(
    {
        "front": {"word": "勉強", "pronunciation": "べんきょう"},
        "back": {
            "meaning": "Study, Learning",
            "example_sentence": {
                "japanese": "毎日、日本語を勉強しています。",
                "english": "I study Japanese every day.",
            },
        },
    },
    ensure_ascii=False,
    indent=2,
)


def request_series():
    """Label sets of every flashcard_http_requests_total series."""
    return {
        tuple(sorted(sample.labels.items()))
        for family in get_flashcard_metrics().http_requests.collect()
        for sample in family.samples
        if sample.name == "flashcard_http_requests_total"
    }


def request_count(method, endpoint, status=200):
    """Current value of one request series, 0 when absent."""
    get_flashcard_metrics()
    labels = {"method": method, "endpoint": endpoint, "status": str(status)}
    return REGISTRY.get_sample_value("flashcard_http_requests_total", labels) or 0.0


# ============================================================================
# ROUTING
# ============================================================================


class TestRouting:
    """Tests for path-prefix dispatch."""

    def test_home(self, client):
        """Test GET / answers Home."""
        response = client.get("/")

        assert response.status_code == 200
        assert response.text == "Home\n"

    @pytest.mark.parametrize("path", ["/unknown", "/api", "/api/other/thing", "/api/flash_cards"])
    def test_unmatched_paths_fall_through_to_home(self, client, path):
        """Test paths outside the mount reach the root catch-all."""
        response = client.get(path)

        assert response.status_code == 200
        assert response.text == "Home\n"

    def test_flashcard_root(self, client):
        """Test GET on the mount root answers Flashcard root."""
        response = client.get("/api/flash_card/")

        assert response.status_code == 200
        assert response.text == "Flashcard root\n"

    @pytest.mark.parametrize("path", ["/api/flash_card/unknown", "/api/flash_card/create/extra"])
    def test_unmatched_sub_paths_fall_through_to_flashcard_root(self, client, path, stub_backend):
        """Test unknown paths under the mount reach the sub-router catch-all."""
        response = client.get(path)

        assert response.status_code == 200
        assert response.text == "Flashcard root\n"
        assert stub_backend.calls == []

    def test_bare_prefix_redirects_into_mount(self, client):
        """Test the prefix without a trailing slash redirects to the slash form."""
        response = client.get("/api/flash_card", follow_redirects=False)

        assert response.status_code == 301
        assert response.headers["location"] == "/api/flash_card/"

    def test_custom_prefix(self, app_factory, stub_factory):
        """Test the flashcard router follows the configured prefix."""
        backend = stub_factory()
        client = app_factory(backend, flashcard_prefix="/v2/cards")

        assert client.get("/v2/cards/").text == "Flashcard root\n"
        assert client.post("/v2/cards/create", json={"word": "猫"}).text == "X"
        assert client.get("/api/flash_card/").text == "Home\n"
        assert len(backend.calls) == 1

    @pytest.mark.parametrize("method,path,text", [
        ("TRACE", "/", "Home\n"),
        ("PROPFIND", "/some/collection", "Home\n"),
        ("TRACE", "/api/flash_card/", "Flashcard root\n"),
        ("PROPFIND", "/api/flash_card/unknown", "Flashcard root\n"),
    ])
    def test_catch_alls_accept_any_method(self, client, method, path, text):
        """Test methods outside the usual set still reach the catch-alls."""
        response = client.request(method, path)

        assert response.status_code == 200
        assert response.text == text

    def test_bare_prefix_redirects_any_method(self, client):
        """Test the redirect is not limited to the usual methods."""
        response = client.request("PROPFIND", "/api/flash_card", follow_redirects=False)

        assert response.status_code == 301
        assert response.headers["location"] == "/api/flash_card/"


# ============================================================================
# FLASHCARD CREATION
# ============================================================================


class TestCreateFlashCard:
    """Tests for POST /api/flash_card/create."""

    def test_backend_response_is_relayed_verbatim(self, client):
        """Test backend {"response": "X"} yields exactly X with 200."""
        response = client.post(CREATE_PATH, json={"word": "勉強"})

        assert response.status_code == 200
        assert response.content == b"X"

    def test_exactly_one_outbound_call_with_prompt(self, client, stub_backend, settings):
        """Test one call whose body carries the built prompt and fixed model/stream."""
        client.post(CREATE_PATH, json={"word": "食べる"})

        assert len(stub_backend.calls) == 1
        call = stub_backend.calls[0]
        body = json.loads(call.body)

        assert call.method == "POST"
        assert call.url == settings.ollama_url
        assert call.headers["Content-Type"] == "application/json"
        assert body == {
            "model": settings.ollama_model,
            "prompt": build_prompt("食べる"),
            "stream": settings.ollama_stream,
        }

    def test_benkyou_flashcard_scenario(self, app_factory, stub_factory):
        """Test a flashcard JSON string from the backend is emitted unchanged."""
        backend = stub_factory(
            reply=json.dumps({"response": BENKYOU_CARD, "done": True}, ensure_ascii=False).encode("utf-8")
        )
        client = app_factory(backend)

        response = client.post(CREATE_PATH, json={"word": "勉強"})

        assert response.status_code == 200
        assert response.content.decode("utf-8") == BENKYOU_CARD

    def test_missing_word_builds_degenerate_prompt(self, client, stub_backend):
        """Test {} is accepted and the prompt ends with an empty word."""
        response = client.post(CREATE_PATH, json={})

        assert response.status_code == 200
        assert json.loads(stub_backend.calls[0].body)["prompt"] == build_prompt("")

    def test_unknown_fields_are_ignored(self, client, stub_backend):
        """Test extra body fields do not fail decoding."""
        response = client.post(CREATE_PATH, json={"word": "水", "level": "N5"})

        assert response.status_code == 200
        assert len(stub_backend.calls) == 1

    def test_requests_are_independent(self, client, stub_backend):
        """Test repeated requests for the same word each call the backend."""
        client.post(CREATE_PATH, json={"word": "猫"})
        client.post(CREATE_PATH, json={"word": "猫"})

        assert len(stub_backend.calls) == 2


# ============================================================================
# FAILURES
# ============================================================================


class TestCreateFlashCardFailures:
    """Tests for the handler's terminating failure steps."""

    @pytest.mark.parametrize("method", ["GET", "PUT", "DELETE", "PATCH", "TRACE", "PROPFIND"])
    def test_wrong_method_is_405_without_backend_call(self, client, stub_backend, method):
        """Test non-POST methods get 405 and no outbound call."""
        response = client.request(method, CREATE_PATH)

        assert response.status_code == 405
        assert response.text == "Method not accepted\n"
        assert response.headers["allow"] == "POST"
        assert stub_backend.calls == []

    @pytest.mark.parametrize("body", [
        b"",
        b"not json",
        b'{"word": ',
        b"[]",
        '"勉強"'.encode("utf-8"),
        b'{"word": 42}',
        b'{"word": null}',
    ])
    def test_malformed_body_is_400_without_backend_call(self, client, stub_backend, body):
        """Test undecodable bodies get a client error and no outbound call."""
        response = client.post(
            CREATE_PATH,
            content=body,
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.text == "Invalid request body\n"
        assert stub_backend.calls == []

    def test_body_read_failure_is_500_without_backend_call(self, client, stub_backend, monkeypatch):
        """Test a client disconnect while reading the body ends the request with 500."""

        async def disconnected_body(self):
            raise ClientDisconnect()

        monkeypatch.setattr(Request, "body", disconnected_body)

        response = client.post(CREATE_PATH, json={"word": "勉強"})

        assert response.status_code == 500
        assert response.text == "Flashcard could not be generated\n"
        assert stub_backend.calls == []

    def test_encoding_failure_stops_before_call(self, client, stub_backend, monkeypatch):
        """Test a failed call construction returns 500 and never executes."""

        def failing_build(prompt, settings):
            raise EncodingError("cannot serialize")

        monkeypatch.setattr("api.src.routers.flashcard.build_inference_call", failing_build)

        response = client.post(CREATE_PATH, json={"word": "勉強"})

        assert response.status_code == 500
        assert response.text == "Flashcard could not be generated\n"
        assert stub_backend.calls == []

    def test_unreachable_backend_is_502(self, app_factory, stub_factory):
        """Test a transport failure maps to 502 Bad Gateway."""
        backend = stub_factory(error=BackendUnavailableError("connection refused"))
        client = app_factory(backend)

        response = client.post(CREATE_PATH, json={"word": "勉強"})

        assert response.status_code == 502
        assert response.text == "Inference backend unavailable\n"
        assert "connection refused" not in response.text

    def test_unreachable_real_backend_is_502(self, app_factory):
        """Test the aiohttp client against a closed port yields 502."""
        from api.src.services.inference_client import AiohttpInferenceClient

        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            sock.bind(("127.0.0.1", 0))
            port = sock.getsockname()[1]

        client = app_factory(
            AiohttpInferenceClient(),
            ollama_url=f"http://127.0.0.1:{port}/api/generate",
        )

        response = client.post(CREATE_PATH, json={"word": "勉強"})

        assert response.status_code == 502

    @pytest.mark.parametrize("reply", [
        b"<html>gateway</html>",
        b'{"error": "model \'gemma\' not found"}',
        b'{"response": 1}',
    ])
    def test_invalid_backend_reply_is_500(self, app_factory, stub_factory, reply):
        """Test an undecodable backend reply maps to 500 with a generic message."""
        backend = stub_factory(reply=reply)
        client = app_factory(backend)

        response = client.post(CREATE_PATH, json={"word": "勉強"})

        assert response.status_code == 500
        assert response.text == "Flashcard could not be generated\n"
        assert len(backend.calls) == 1

    def test_server_keeps_serving_after_failure(self, app_factory, stub_factory):
        """Test a failed request does not affect the next one."""
        backend = stub_factory(error=BackendUnavailableError("down"))
        client = app_factory(backend)

        assert client.post(CREATE_PATH, json={"word": "a"}).status_code == 502

        backend.error = None
        assert client.post(CREATE_PATH, json={"word": "a"}).status_code == 200


# ============================================================================
# AUTHENTICATION
# ============================================================================


class TestAuthentication:
    """Tests for the optional token authenticator."""

    def test_disabled_by_default(self, client):
        """Test requests without a token pass when auth is disabled."""
        assert client.post(CREATE_PATH, json={"word": "勉強"}).status_code == 200

    def test_bearer_token_reaches_router(self, app_factory, stub_factory):
        """Test token: bearer passes through to the handler."""
        backend = stub_factory()
        client = app_factory(backend, auth_enabled=True)

        response = client.post(CREATE_PATH, json={"word": "勉強"}, headers={"token": "bearer"})

        assert response.status_code == 200
        assert len(backend.calls) == 1

    @pytest.mark.parametrize("headers", [{}, {"token": "wrong"}, {"token": "BEARER"}])
    def test_other_tokens_rejected_before_router(self, app_factory, stub_factory, headers):
        """Test a missing or wrong token is 401 and the handler never runs."""
        backend = stub_factory()
        client = app_factory(backend, auth_enabled=True)

        response = client.post(CREATE_PATH, json={"word": "勉強"}, headers=headers)

        assert response.status_code == 401
        assert response.text == "Authentication failed. Invalid token\n"
        assert backend.calls == []

    def test_auth_applies_to_every_route(self, app_factory, stub_factory):
        """Test the authenticator wraps the whole dispatcher."""
        client = app_factory(stub_factory(), auth_enabled=True)

        assert client.get("/").status_code == 401
        assert client.get("/api/flash_card/").status_code == 401
        assert client.get("/", headers={"token": "bearer"}).text == "Home\n"

    def test_rejected_request_is_still_logged(self, app_factory, stub_factory):
        """Test the logger runs outside the authenticator."""
        client = app_factory(stub_factory(), auth_enabled=True)

        with capture_logs() as logs:
            client.post(CREATE_PATH, json={"word": "勉強"})

        events = [entry["event"] for entry in logs]
        started = next(entry for entry in logs if entry["event"] == "request_started")

        assert started["method"] == "POST"
        assert started["path"] == CREATE_PATH
        assert events.index("request_started") < events.index("auth_invalid_token")
        assert "flashcard_requested" not in events


# ============================================================================
# AMBIENT ENDPOINTS
# ============================================================================


class TestAmbientEndpoints:
    """Tests for health, metrics and correlation IDs."""

    def test_health(self, client, settings):
        """Test the health check reports the service."""
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["service"] == settings.app_name

    def test_metrics_exposed(self, client):
        """Test request metrics are scraped from /metrics."""
        client.get("/")

        response = client.get("/metrics")

        assert response.status_code == 200
        assert "flashcard_http_requests_total" in response.text

    def test_metrics_disabled_falls_through_to_home(self, app_factory, stub_factory):
        """Test /metrics is an ordinary unmatched path when metrics are off."""
        client = app_factory(stub_factory(), metrics_enabled=False)

        assert client.get("/metrics").text == "Home\n"

    def test_correlation_id_echoed(self, client):
        """Test a supplied correlation ID is returned on the response."""
        response = client.get("/", headers={"X-Correlation-ID": "abc-123"})

        assert response.headers["X-Correlation-ID"] == "abc-123"

    def test_correlation_id_generated(self, client):
        """Test a correlation ID is generated when none is supplied."""
        response = client.get("/")

        assert response.headers["X-Correlation-ID"]

    def test_request_metrics_use_route_templates(self, client):
        """Test request series are labelled with the matched route, not the path."""
        create_before = request_count("POST", "/api/flash_card/create")
        sub_before = request_count("GET", "/api/flash_card/{path:path}")
        home_before = request_count("GET", "/{path:path}")

        client.post(CREATE_PATH, json={"word": "勉強"})
        client.get("/api/flash_card/unknown")
        client.get("/unknown")

        assert request_count("POST", "/api/flash_card/create") == create_before + 1
        assert request_count("GET", "/api/flash_card/{path:path}") == sub_before + 1
        assert request_count("GET", "/{path:path}") == home_before + 1

    def test_distinct_paths_do_not_add_series(self, client):
        """Test many distinct unmatched paths fold into the catch-all series."""
        client.get("/scan/warmup")
        client.get("/api/flash_card/scan/warmup")
        before = request_series()

        for i in range(100):
            assert client.get(f"/scan/{i}").text == "Home\n"
            assert client.get(f"/api/flash_card/scan/{i}").text == "Flashcard root\n"

        assert request_series() == before

    def test_unknown_methods_share_one_series(self, client):
        """Test arbitrary method names are labelled OTHER."""
        before = request_count("OTHER", "/{path:path}")

        client.request("PROPFIND", "/")
        client.request("MKCOL", "/")

        assert request_count("OTHER", "/{path:path}") == before + 2

    def test_rejected_requests_are_unrouted(self, app_factory, stub_factory):
        """Test requests answered by the authenticator carry the unrouted label."""
        client = app_factory(stub_factory(), auth_enabled=True)
        before = request_count("POST", "unrouted", status=401)

        client.post(CREATE_PATH, json={"word": "勉強"})

        assert request_count("POST", "unrouted", status=401) == before + 1
