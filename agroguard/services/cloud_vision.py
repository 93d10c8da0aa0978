"""Cloud vision client: Gemini generateContent with a JSON response schema."""

import base64
import json
import logging

import httpx
from pydantic import ValidationError

from agroguard.config import Settings, get_settings
from agroguard.schemas.analysis import CloudAnalysisResponse, YieldAnalysis

logger = logging.getLogger(__name__)

ANALYSIS_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "expectedLoss": {"type": "NUMBER", "description": "Predicted yield loss percentage (0-100)."},
        "confidenceScore": {"type": "NUMBER", "description": "Statistical confidence in diagnostic markers."},
        "riskLevel": {"type": "STRING", "description": "Low, Medium, or High"},
        "recommendations": {
            "type": "ARRAY",
            "items": {"type": "STRING"},
            "description": "Actionable agronomical steps.",
        },
        "diseaseDetected": {"type": "STRING", "description": "Scientific or common name of pathogen."},
        "diseaseDescription": {"type": "STRING", "description": "Technical reasoning focusing on visual morphology."},
        "similarityScore": {"type": "NUMBER", "description": "Pattern match against known disease signatures."},
        "symptomlessStressDetected": {"type": "BOOLEAN", "description": "Detection of pre-necrotic physiological shifts."},
        "stressProbability": {"type": "NUMBER", "description": "Calculated stress probability (0-100)."},
        "treatmentUrgency": {"type": "STRING", "description": "Immediate, Within 48h, or Monitoring"},
        "detailedMetrics": {
            "type": "OBJECT",
            "properties": {
                "leafCoverage": {"type": "NUMBER", "description": "Percent of surface area showing active symptoms."},
                "spreadVelocity": {"type": "STRING", "description": "Static, Slow, Moderate, or Aggressive."},
                "climateRiskFactor": {"type": "NUMBER", "description": "Sensitivity to current environmental variance."},
            },
            "required": ["leafCoverage", "spreadVelocity", "climateRiskFactor"],
        },
    },
    "required": [
        "expectedLoss",
        "confidenceScore",
        "riskLevel",
        "recommendations",
        "symptomlessStressDetected",
        "stressProbability",
        "treatmentUrgency",
        "diseaseDetected",
        "diseaseDescription",
        "detailedMetrics",
    ],
}

PROMPT_TEMPLATE = """Act as a senior plant pathologist and computer vision expert.
Target crop: {crop_type}. Sensitivity profile: {sensitivity}.

Tasks:
1. Match visible patterns against known pathogens (e.g. Early Blight, Rust).
2. Detect symptomless stress: subtle chlorosis, wilting, or spectral shifts.
3. Predict yield impact from visible foliar damage.

Output strictly JSON according to the provided schema."""


class CloudAnalysisError(Exception):
    """Any failure of the remote analysis call."""


def build_request_payload(crop_type: str, sensitivity: str, image_b64: str | None,
                          temperature: float = 0.1) -> dict:
    parts = [{"text": PROMPT_TEMPLATE.format(crop_type=crop_type, sensitivity=sensitivity)}]
    if image_b64:
        parts.append({"inline_data": {"mime_type": "image/jpeg", "data": image_b64}})
    return {
        "contents": [{"parts": parts}],
        "generationConfig": {
            "responseMimeType": "application/json",
            "responseSchema": ANALYSIS_SCHEMA,
            "temperature": temperature,
        },
    }


def strip_data_url(image) -> str | None:
    """Return the base64 body of a data: URL (or the string itself)."""
    if image is None:
        return None
    if isinstance(image, (bytes, bytearray)):
        return base64.b64encode(bytes(image)).decode("ascii")
    text = str(image).strip()
    if text.startswith("data:"):
        return text.split(",", 1)[1] if "," in text else None
    return text or None


def parse_response(body: dict) -> YieldAnalysis:
    """Pull the JSON text out of a generateContent body and validate it.

    Raises:
        CloudAnalysisError: missing candidate text, invalid JSON, or a
            payload that does not match the analysis shape.
    """
    try:
        text = body["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError) as e:
        raise CloudAnalysisError(f"Response has no candidate text: {e}") from e

    try:
        payload = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        raise CloudAnalysisError(f"Response text is not JSON: {e}") from e

    if not isinstance(payload, dict):
        raise CloudAnalysisError("Response JSON is not an object")

    try:
        return CloudAnalysisResponse.model_validate(payload).to_analysis()
    except ValidationError as e:
        raise CloudAnalysisError(f"Response does not match analysis schema: {e}") from e


class CloudVisionClient:
    """Remote analysis over httpx; one request per call."""

    def __init__(self, settings: Settings | None = None, transport: httpx.AsyncBaseTransport | None = None):
        self.settings = settings or get_settings()
        self._transport = transport

    @property
    def configured(self) -> bool:
        return self.settings.has_remote_credentials

    async def analyze(self, image, crop_type: str, sensitivity: str) -> YieldAnalysis:
        if not self.configured:
            raise CloudAnalysisError("No remote API key configured")

        payload = build_request_payload(
            crop_type,
            sensitivity,
            strip_data_url(image),
            temperature=self.settings.remote_temperature,
        )
        headers = {
            "Content-Type": "application/json",
            "x-goog-api-key": self.settings.gemini_api_key,
        }

        try:
            async with httpx.AsyncClient(
                timeout=self.settings.remote_timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    self.settings.generate_content_url, json=payload, headers=headers
                )
                logger.debug("Cloud vision response status: %d", response.status_code)
                response.raise_for_status()
                body = response.json()
        except httpx.HTTPError as e:
            raise CloudAnalysisError(f"Cloud request failed: {e}") from e
        except ValueError as e:
            raise CloudAnalysisError(f"Cloud response body is not JSON: {e}") from e

        return parse_response(body)
