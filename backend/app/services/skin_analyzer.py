"""
Gemini-powered image checks: face validation and skin condition detection.

Both calls are optional collaborators of the recommendation pipeline.
When Gemini is not configured or fails, the service degrades instead of
failing the request:

- face validation fails open (the image is accepted)
- skin analysis returns an empty detection, so scoring proceeds with the
  user-selected conditions only

Model output is parsed leniently: JSON in a code fence, a JSON object
embedded in prose, or raw JSON; failing all of those, conditions, skin
type, confidence and bullet lists are recovered from the text itself.
"""

import base64
import binascii
import io
import json
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from google import genai
from google.genai import types
from PIL import Image

from app.config import settings
from app.exceptions import DegradedAnalysis
from app.models.analysis import FaceValidation, SkinAnalysis
from app.utils.constants import (
    CONDITION_KEYWORDS,
    DEFAULT_SKIN_TYPE,
    SKIN_TYPES,
    VALID_CONDITIONS
)
from app.utils.helpers import truncate_text

# Configure logging
logger = logging.getLogger(__name__)

# ─── Prompts ───────────────────────────────────────────────────────────────────

FACE_VALIDATION_PROMPT = (
    "You are an image validator. Check if the uploaded image is a clear photo of a "
    "human face (selfie, front-facing face photo). Respond with ONLY a JSON object in "
    'this format: {"isHumanFace": true/false, "reason": "brief reason"}'
)

SKIN_ANALYSIS_PROMPT = f"""You are a skincare analysis assistant. Examine the face in the image and describe visible skin concerns.

Respond with ONLY a JSON object with this EXACT structure:
{{
  "detectedConditions": ["acne", "oily"],
  "skinType": "combination",
  "confidence": 0.85,
  "observations": ["short observation", "..."],
  "recommendations": ["short recommendation", "..."]
}}

Rules:
- detectedConditions may only contain: {", ".join(VALID_CONDITIONS)}
- skinType must be one of: {", ".join(SKIN_TYPES)}
- confidence is a number between 0 and 1
- Do not diagnose medical conditions
"""

MAX_IMAGE_DIMENSION = 800
JPEG_QUALITY = 80

_DATA_URI_PREFIX = re.compile(r'^data:(image/[\w.+-]+);base64,', re.IGNORECASE)
_JSON_FENCE = re.compile(r'```json\s*([\s\S]*?)\s*```')
_ANY_FENCE = re.compile(r'```\s*([\s\S]*?)\s*```')
_JSON_OBJECT = re.compile(r'\{[\s\S]*\}')
_CONFIDENCE = re.compile(r'confidence[:\s]+([0-9.]+)', re.IGNORECASE)
_BULLET_LINE = re.compile(r'^[ \t]*[-•*][ \t]*(.+)$', re.MULTILINE)
_RECOMMENDATION_SECTION = re.compile(r'recommendations?[:\s]+([\s\S]*?)(?:\n\n|$)', re.IGNORECASE)


def decode_image(image: str) -> Tuple[bytes, str]:
    """
    Decode a base64 image or data URI.

    Returns:
        Tuple[bytes, str]: Raw image bytes and MIME type (image/jpeg when
                           the input carries none)

    Raises:
        DegradedAnalysis: If the payload is not valid base64
    """
    mime_type = "image/jpeg"
    match = _DATA_URI_PREFIX.match(image)
    if match:
        mime_type = match.group(1).lower()
        image = image[match.end():]
    elif "," in image:
        image = image.split(",", 1)[1]

    try:
        return base64.b64decode(image, validate=False), mime_type
    except (binascii.Error, ValueError) as e:
        raise DegradedAnalysis(f"Image is not valid base64: {e}") from e


def optimize_image(image: str) -> Tuple[bytes, str]:
    """
    Shrink an uploaded image before it is sent for skin analysis.

    The image is scaled down to fit within MAX_IMAGE_DIMENSION on both
    sides (never enlarged) and re-encoded as JPEG.

    Args:
        image: Base64 image or data URI

    Returns:
        Tuple[bytes, str]: JPEG bytes and "image/jpeg"

    Raises:
        DegradedAnalysis: If the payload cannot be decoded as an image
    """
    raw_bytes, _ = decode_image(image)
    try:
        with Image.open(io.BytesIO(raw_bytes)) as source:
            # JPEG has no alpha channel or palette
            picture = source.convert("RGB")
        picture.thumbnail((MAX_IMAGE_DIMENSION, MAX_IMAGE_DIMENSION))
        buffer = io.BytesIO()
        picture.save(buffer, format="JPEG", quality=JPEG_QUALITY)
    except (OSError, ValueError) as e:
        raise DegradedAnalysis(f"Image could not be optimized: {e}") from e

    optimized = buffer.getvalue()
    logger.info(
        f"Image optimized: {len(raw_bytes)} -> {len(optimized)} bytes "
        f"({picture.width}x{picture.height})"
    )
    return optimized, "image/jpeg"


def parse_json_response(text: str) -> Optional[Dict[str, Any]]:
    """
    Extract a JSON object from model output.

    Strategies, in order: ```json fenced block, any fenced block, the
    outermost {...} in the text, the whole text.

    Returns:
        Dict or None if no strategy yields a JSON object
    """
    if not text:
        return None

    candidates = []
    fenced = _JSON_FENCE.search(text)
    if fenced:
        candidates.append(fenced.group(1))
    fenced = _ANY_FENCE.search(text)
    if fenced:
        candidates.append(fenced.group(1))
    embedded = _JSON_OBJECT.search(text)
    if embedded:
        candidates.append(embedded.group(0))
    candidates.append(text)

    for candidate in candidates:
        try:
            parsed = json.loads(candidate.strip())
        except ValueError:
            continue
        if isinstance(parsed, dict):
            return parsed
    return None


def extract_conditions_from_text(text: str) -> List[str]:
    """Supported conditions whose keywords appear in free text."""
    lower_text = (text or "").lower()
    return [
        condition for condition, keywords in CONDITION_KEYWORDS.items()
        if any(keyword in lower_text for keyword in keywords)
    ]


def extract_skin_type_from_text(text: str) -> str:
    """First skin type named in the text, or the default."""
    lower_text = (text or "").lower()
    for skin_type in SKIN_TYPES:
        if skin_type in lower_text:
            return skin_type
    return DEFAULT_SKIN_TYPE


def _normalize_confidence(value: Any, default: float = 0.8) -> float:
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return default
    if confidence > 1:
        confidence = confidence / 100  # percentage
    return max(0.0, min(1.0, confidence)) if confidence > 0 else default


def extract_structured_data_from_text(text: str) -> SkinAnalysis:
    """
    Rebuild a skin analysis from non-JSON model output.

    Args:
        text: Raw model response

    Returns:
        SkinAnalysis: Best-effort analysis, noted as text-extracted
    """
    text = text or ""

    confidence_match = _CONFIDENCE.search(text)
    confidence = _normalize_confidence(confidence_match.group(1) if confidence_match else None)

    observations = [item.strip() for item in _BULLET_LINE.findall(text) if item.strip()]

    recommendations: List[str] = []
    section = _RECOMMENDATION_SECTION.search(text)
    if section:
        recommendations = [item.strip() for item in _BULLET_LINE.findall(section.group(1)) if item.strip()]

    return SkinAnalysis(
        detected_conditions=extract_conditions_from_text(text),
        skin_type=extract_skin_type_from_text(text),
        confidence=confidence,
        observations=observations or [text[:500]],
        recommendations=recommendations,
        note="Analysis extracted from text response (JSON parsing failed)"
    )


def analysis_from_payload(payload: Dict[str, Any]) -> SkinAnalysis:
    """
    Build a SkinAnalysis from the model's JSON object.

    Unknown condition identifiers and skin types are dropped in favour of
    the supported enumerations.
    """
    detected = payload.get("detectedConditions") or payload.get("detected_conditions") or []
    if isinstance(detected, str):
        detected = [detected]
    detected = list(dict.fromkeys(
        str(c).strip().lower() for c in detected
        if str(c).strip().lower() in VALID_CONDITIONS
    ))

    skin_type = str(payload.get("skinType") or payload.get("skin_type") or DEFAULT_SKIN_TYPE).lower()
    if skin_type not in SKIN_TYPES:
        skin_type = DEFAULT_SKIN_TYPE

    def _strings(value: Any) -> List[str]:
        if isinstance(value, str):
            return [value]
        return [str(item) for item in (value or []) if item]

    return SkinAnalysis(
        detected_conditions=detected,
        skin_type=skin_type,
        confidence=_normalize_confidence(payload.get("confidence")),
        observations=_strings(payload.get("observations")),
        recommendations=_strings(payload.get("recommendations"))
    )


class SkinAnalyzer:
    """
    Face validation and skin condition detection via Gemini vision.

    Attributes:
        model: Gemini model name
        client: google-genai client, None when no API key is configured
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        client: Optional[Any] = None
    ):
        api_key = api_key if api_key is not None else settings.GEMINI_API_KEY
        self.model = model or settings.LLM_MODEL
        self.client = client
        if self.client is None and api_key:
            self.client = genai.Client(api_key=api_key)

        logger.info(
            f"SkinAnalyzer initialized (model: {self.model}, "
            f"enabled: {self.enabled})"
        )

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def _generate(
        self,
        image_bytes: bytes,
        mime_type: str,
        prompt: str,
        max_tokens: int,
        temperature: float,
        json_output: bool = False
    ) -> str:
        """
        Send one image + instruction to Gemini and return the response text.

        Raises:
            DegradedAnalysis: On any client error or an empty response
        """
        try:
            response = self.client.models.generate_content(
                model=self.model,
                contents=[
                    types.Part.from_bytes(data=image_bytes, mime_type=mime_type),
                    "Analyze this image and respond with ONLY the JSON object described."
                ],
                config=types.GenerateContentConfig(
                    system_instruction=prompt,
                    temperature=temperature,
                    max_output_tokens=max_tokens,
                    response_mime_type="application/json" if json_output else None,
                ),
            )
        except Exception as e:
            raise DegradedAnalysis(f"Gemini API error: {e}") from e

        text = response.text.strip() if response and response.text else ""
        if not text:
            raise DegradedAnalysis("Empty response from Gemini")
        return text

    def validate_face(self, image: str) -> FaceValidation:
        """
        Check that an image is a clear photo of a human face.

        Fails open: without a client, or on any model failure, the image is
        accepted so that an AI outage never blocks recommendations.

        Args:
            image: Base64 image or data URI

        Returns:
            FaceValidation: Validity flag and the model's reason
        """
        if not self.enabled:
            logger.warning("Gemini not configured, skipping face validation")
            return FaceValidation(is_valid=True, message="Validation skipped")

        try:
            image_bytes, mime_type = decode_image(image)
            text = self._generate(
                image_bytes, mime_type, FACE_VALIDATION_PROMPT, max_tokens=100, temperature=0.1
            )
        except DegradedAnalysis as e:
            logger.error(f"Face validation error: {e}")
            return FaceValidation(is_valid=True, message="Validation service unavailable")

        logger.info(f"Face validation response: {text}")

        parsed = parse_json_response(text)
        if parsed is not None and "isHumanFace" in parsed:
            return FaceValidation(
                is_valid=parsed.get("isHumanFace") is True,
                message=str(parsed.get("reason") or "Image validation completed")
            )

        # Not JSON; infer from wording
        lower_text = text.lower()
        is_valid = "not" not in lower_text and "invalid" not in lower_text and "face" in lower_text
        return FaceValidation(is_valid=is_valid, message=text)

    def analyze_skin_image(self, image: str) -> SkinAnalysis:
        """
        Detect skin conditions and skin type in a face image.

        The image is shrunk with optimize_image before the model call; an
        image that cannot be decoded degrades the analysis like a model
        failure.

        Args:
            image: Base64 image or data URI

        Returns:
            SkinAnalysis: Detected conditions (supported identifiers only).
                          Empty detection with a note when analysis is
                          unavailable or fails.
        """
        if not self.enabled:
            logger.warning("Gemini not configured, skipping image analysis")
            return SkinAnalysis(confidence=0.85, note="AI analysis not available")

        try:
            image_bytes, mime_type = optimize_image(image)
            text = self._generate(
                image_bytes, mime_type, SKIN_ANALYSIS_PROMPT,
                max_tokens=500, temperature=0.3, json_output=True
            )
        except DegradedAnalysis as e:
            logger.error(f"Skin analysis failed: {e}")
            return SkinAnalysis(
                confidence=0.5,
                note="AI analysis failed, using user-selected conditions"
            )

        logger.debug(f"Skin analysis raw response: {text}")

        payload = parse_json_response(text)
        if payload is not None:
            analysis = analysis_from_payload(payload)
        else:
            logger.warning(
                f"Failed to parse skin analysis as JSON, extracting from text: "
                f"{truncate_text(text, 300)}"
            )
            analysis = extract_structured_data_from_text(text)

        logger.info(
            f"Skin analysis: conditions={analysis.detected_conditions or 'none'}, "
            f"skin_type={analysis.skin_type}, confidence={analysis.confidence * 100:.1f}%"
        )
        return analysis
