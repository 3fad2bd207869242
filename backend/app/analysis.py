from __future__ import annotations

import asyncio
import base64
import json
import logging
import re
from typing import Any, Optional

import httpx

from .config import Settings

logger = logging.getLogger(__name__)


class AnalysisError(Exception):
    """Analysis failed; `status_code` and `payload` are what the API returns."""

    def __init__(self, message: str, *, status_code: int = 500, payload: Optional[dict] = None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload if payload is not None else {"error": message}


class NotFloorPlanError(AnalysisError):
    def __init__(self, detected_content: Optional[str]):
        super().__init__(
            "NOT_FLOOR_PLAN",
            status_code=400,
            payload={"error": "NOT_FLOOR_PLAN", "detectedContent": detected_content},
        )
        self.detected_content = detected_content


MOCK_ANALYSIS_RESULT: dict[str, Any] = {
    "isFloorPlan": True,
    "boothCount": 24,
    "emptySpaceRatio": 0.35,
    "entranceCount": 3,
    "zones": ["Zone A", "Zone B", "Zone C"],
    "features": ["Main stage", "Information desk", "Rest lounge"],
    "analysis": "[MOCK] Exhibition floor plan. 24 booths split across 3 zones.",
    "estimatedDimensions": {"width": 50, "height": 40},
    "estimatedTotalArea": 2000,
    "areaCalculationMethod": "[MOCK] sample data for testing",
}

QUOTA_ERROR_MESSAGE = "429 Resource has been exhausted (quota)"

FLOOR_PLAN_PROMPT = """
First decide whether this image is an event venue / exhibition hall floor plan.

If it is NOT a floor plan (a photo of people, scenery, food, animals, any ordinary photo):
{
  "isFloorPlan": false,
  "detectedContent": "what the image shows (e.g. a cat, a food photo, a landscape)"
}

If it IS a floor plan, analyze:
1. Number of booths (booths labelled P1, P2, S1, S2 and so on)
2. Ratio of aisles and empty space (a value between 0 and 1)
3. Number of entrances
4. Zone divisions
5. Notable features (stage, lounge, ...)
6. Estimate the venue's total area (m^2) from any dimensions or scale shown.
   - If the plan shows dimensions, compute from them
   - Otherwise estimate from a typical booth size (3m x 3m = 9 m^2)
   - Estimate the overall width x height of the space

Respond with JSON only, in this shape:
{
  "isFloorPlan": true,
  "boothCount": number,
  "emptySpaceRatio": decimal between 0 and 1,
  "entranceCount": number,
  "zones": ["Zone 1", "Zone 2"],
  "features": ["Conference Stage", "Open Lounge"],
  "analysis": "short description",
  "estimatedDimensions": {
    "width": width in meters,
    "height": height in meters
  },
  "estimatedTotalArea": estimated total area in m^2,
  "areaCalculationMethod": "how the area was derived (plan dimensions, booth-size estimate, ...)"
}
"""

_FENCE_RE = re.compile(r"```json\n?|\n?```")


def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", text or "").strip()


def parse_model_json(text: str) -> dict:
    cleaned = strip_code_fences(text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise AnalysisError(f"could not parse model response as JSON: {e}") from e
    if not isinstance(data, dict):
        raise AnalysisError("model response is not a JSON object")
    return data


def _number(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def fallback_total_area(booth_count: float, booth_size: float, empty_space_ratio: float) -> int:
    # Booths cover (1 - empty ratio) of the floor.
    booth_area = booth_count * booth_size
    occupied = 1 - empty_space_ratio
    if occupied <= 0:
        raise AnalysisError("emptySpaceRatio must be below 1 to estimate area from booths")
    return int(round(booth_area / occupied))


def finalize_analysis(raw: dict, booth_size: float) -> dict:
    """
    Coerce the model output into the response shape.
    Falls back to a booth-based area estimate when the model gave none.
    """
    if raw.get("isFloorPlan") is False:
        raise NotFloorPlanError(raw.get("detectedContent"))

    booth_count = _number(raw.get("boothCount"))
    estimated_booth_area = booth_count * booth_size

    total_area = _number(raw.get("estimatedTotalArea"))
    if total_area <= 0:
        total_area = fallback_total_area(booth_count, booth_size, _number(raw.get("emptySpaceRatio")))

    return {
        **raw,
        "boothSize": booth_size,
        "estimatedBoothArea": estimated_booth_area,
        "estimatedTotalArea": total_area,
    }


def build_generate_request(image_bytes: bytes, mime_type: str) -> dict:
    return {
        "contents": [
            {
                "parts": [
                    {
                        "inline_data": {
                            "mime_type": mime_type or "image/jpeg",
                            "data": base64.b64encode(image_bytes).decode("ascii"),
                        }
                    },
                    {"text": FLOOR_PLAN_PROMPT},
                ]
            }
        ]
    }


def response_text(svc_json: dict) -> str:
    candidates = svc_json.get("candidates") or []
    if not candidates:
        feedback = svc_json.get("promptFeedback") or {}
        raise AnalysisError(f"model returned no candidates (blockReason={feedback.get('blockReason')})")
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(p.get("text", "") for p in parts)


async def call_gemini(
    image_bytes: bytes,
    mime_type: str,
    settings: Settings,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> str:
    if not settings.google_api_key:
        raise AnalysisError("GOOGLE_AI_API_KEY is not configured")

    url = f"{settings.gemini_api_base}/models/{settings.gemini_model}:generateContent"
    headers = {"x-goog-api-key": settings.google_api_key}
    async with httpx.AsyncClient(timeout=settings.analyze_timeout_s, transport=transport) as client:
        resp = await client.post(url, json=build_generate_request(image_bytes, mime_type), headers=headers)

    if resp.status_code != 200:
        raise AnalysisError(f"{resp.status_code} vision service error: {resp.text}")
    try:
        return response_text(resp.json())
    except (ValueError, AttributeError, TypeError) as e:
        raise AnalysisError(f"invalid vision service response: {e}") from e


async def analyze_floor_plan(
    image_bytes: Optional[bytes],
    mime_type: str,
    booth_size: float,
    settings: Settings,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> dict:
    if not image_bytes:
        raise AnalysisError("An image is required.", status_code=400)

    if settings.mock_error == "quota":
        logger.info("mock mode: simulating quota exhaustion")
        await asyncio.sleep(settings.mock_delay_s)
        raise AnalysisError(QUOTA_ERROR_MESSAGE)

    if settings.use_mock_data:
        logger.info("mock mode: returning sample analysis")
        await asyncio.sleep(settings.mock_delay_s)
        return {
            **MOCK_ANALYSIS_RESULT,
            "boothSize": booth_size,
            "estimatedBoothArea": MOCK_ANALYSIS_RESULT["boothCount"] * booth_size,
        }

    try:
        text = await call_gemini(image_bytes, mime_type, settings, transport=transport)
    except httpx.HTTPError as e:
        raise AnalysisError(f"vision service request failed: {e}") from e
    return finalize_analysis(parse_model_json(text), booth_size)
