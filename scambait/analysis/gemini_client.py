"""Gemini fallback for transcripts the keyword tagger cannot place."""

import asyncio
from typing import Optional

import google.generativeai as genai

from config.prompts import SCAM_CLASSIFICATION_PROMPT
from config.settings import settings
from scambait.analysis.tagging import ScamType, TagAnalysis, analyze_transcript, merge_tags, scam_type_tag
from scambait.utils.logger import get_logger

logger = get_logger(__name__)

# Long calls are truncated; the scheme is almost always stated early
MAX_TRANSCRIPT_CHARS = 12000


class GeminiClassifier:
    """Lightweight async wrapper that asks Gemini for a single scam label."""

    def __init__(self, model_name: Optional[str] = None):
        if settings.gemini_api_key:
            genai.configure(api_key=settings.gemini_api_key)
        self.model = genai.GenerativeModel(
            model_name=model_name or settings.gemini_model,
            generation_config={
                "temperature": 0.0,
                "max_output_tokens": 10,
            },
        )

    @staticmethod
    def parse_label(text: Optional[str]) -> Optional[ScamType]:
        if not text:
            return None
        label = text.strip().strip(".\"'`").lower().replace("-", "_").replace(" ", "_")
        try:
            return ScamType(label)
        except ValueError:
            logger.warning("Gemini returned unrecognised label %r", text)
            return None

    async def classify(self, transcript: str) -> Optional[ScamType]:
        """Return Gemini's scam type for the transcript, or None if it cannot answer."""
        if not settings.gemini_api_key:
            logger.warning("GEMINI_API_KEY not configured; skipping AI classification.")
            return None

        prompt = SCAM_CLASSIFICATION_PROMPT.format(transcript=transcript[:MAX_TRANSCRIPT_CHARS])

        def _run() -> Optional[str]:
            response = self.model.generate_content(prompt)
            return response.text

        try:
            text = await asyncio.to_thread(_run)
        except Exception as exc:
            logger.error("Gemini classification failed: %s", exc)
            return None
        return self.parse_label(text)


def ai_classification_enabled() -> bool:
    return bool(settings.gemini_api_key)


async def analyze_with_ai_fallback(
    transcript: str, classifier: Optional[GeminiClassifier] = None
) -> TagAnalysis:
    """Keyword analysis first; Gemini is only asked when the keywords found no scam type."""
    analysis = analyze_transcript(transcript)
    if analysis.scam_type is not ScamType.UNKNOWN or not ai_classification_enabled():
        return analysis

    scam_type = await (classifier or GeminiClassifier()).classify(transcript)
    if scam_type is None or scam_type is ScamType.UNKNOWN:
        return analysis

    logger.info("Gemini classified transcript as %s", scam_type.value)
    tags = merge_tags([scam_type_tag(scam_type)], analysis.tags)
    return TagAnalysis(scam_type=scam_type, tags=tags, confidence=analysis.confidence)
