import json

import httpx
import pytest

from agroguard.config import Settings
from agroguard.services.cloud_vision import (
    CloudAnalysisError,
    CloudVisionClient,
    build_request_payload,
    parse_response,
    strip_data_url,
)
from conftest import run

REMOTE_PAYLOAD = {
    "expectedLoss": 22.4,
    "confidenceScore": 0.91,
    "riskLevel": "High",
    "recommendations": ["Immediate copper-based spray"],
    "diseaseDetected": "Early Blight",
    "diseaseDescription": "Concentric lesions on lower leaves.",
    "similarityScore": 0.8,
    "symptomlessStressDetected": False,
    "stressProbability": 64.6,
    "treatmentUrgency": "Immediate",
    "detailedMetrics": {"leafCoverage": 18, "spreadVelocity": "Moderate", "climateRiskFactor": 0.4},
}


def _body(payload) -> dict:
    text = payload if isinstance(payload, str) else json.dumps(payload)
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def _settings(**overrides) -> Settings:
    values = dict(gemini_api_key="test-key", gemini_model="gemini-test")
    values.update(overrides)
    return Settings(**values)


def test_parse_response_rounds_percentages():
    analysis = parse_response(_body(REMOTE_PAYLOAD))

    assert analysis.expected_loss == 22
    assert analysis.stress_probability == 65
    assert analysis.disease_detected == "Early Blight"
    assert analysis.detailed_metrics.spread_velocity == "Moderate"


@pytest.mark.parametrize(
    "body",
    [
        {},
        {"candidates": []},
        _body("not json"),
        _body(["a", "list"]),
        _body({**REMOTE_PAYLOAD, "riskLevel": "Severe"}),
        _body({k: v for k, v in REMOTE_PAYLOAD.items() if k != "detailedMetrics"}),
    ],
)
def test_parse_response_rejects_bad_bodies(body):
    with pytest.raises(CloudAnalysisError):
        parse_response(body)


def test_parse_response_rounds_half_up():
    analysis = parse_response(_body({**REMOTE_PAYLOAD, "expectedLoss": 22.5, "stressProbability": 64.5}))

    assert analysis.expected_loss == 23
    assert analysis.stress_probability == 65


def test_request_payload_shape():
    payload = build_request_payload("Wheat", "High", "QUJD", temperature=0.1)

    parts = payload["contents"][0]["parts"]
    assert "Target crop: Wheat" in parts[0]["text"]
    assert "Sensitivity profile: High" in parts[0]["text"]
    assert parts[1] == {"inline_data": {"mime_type": "image/jpeg", "data": "QUJD"}}
    assert payload["generationConfig"]["responseMimeType"] == "application/json"
    assert payload["generationConfig"]["temperature"] == 0.1

    no_image = build_request_payload("Wheat", "High", None)
    assert len(no_image["contents"][0]["parts"]) == 1


def test_strip_data_url():
    assert strip_data_url("data:image/jpeg;base64,QUJD") == "QUJD"
    assert strip_data_url("QUJD") == "QUJD"
    assert strip_data_url(b"ABC") == "QUJD"
    assert strip_data_url(None) is None
    assert strip_data_url("") is None


def test_client_posts_and_parses():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["key"] = request.headers.get("x-goog-api-key")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=_body(REMOTE_PAYLOAD))

    client = CloudVisionClient(_settings(), transport=httpx.MockTransport(handler))
    analysis = run(client.analyze("data:image/jpeg;base64,QUJD", "Tomato", "Standard"))

    assert analysis.expected_loss == 22
    assert seen["url"].endswith("/gemini-test:generateContent")
    assert seen["key"] == "test-key"
    assert seen["body"]["contents"][0]["parts"][1]["inline_data"]["data"] == "QUJD"


def test_client_wraps_http_errors():
    transport = httpx.MockTransport(lambda request: httpx.Response(503, text="overloaded"))
    client = CloudVisionClient(_settings(), transport=transport)

    with pytest.raises(CloudAnalysisError):
        run(client.analyze(None, "Tomato", "Standard"))


def test_client_wraps_transport_errors():
    def handler(request):
        raise httpx.ConnectError("unreachable", request=request)

    client = CloudVisionClient(_settings(), transport=httpx.MockTransport(handler))

    with pytest.raises(CloudAnalysisError):
        run(client.analyze(None, "Tomato", "Standard"))


def test_client_without_key_refuses():
    client = CloudVisionClient(_settings(gemini_api_key=""))

    assert not client.configured
    with pytest.raises(CloudAnalysisError):
        run(client.analyze(None, "Tomato", "Standard"))
