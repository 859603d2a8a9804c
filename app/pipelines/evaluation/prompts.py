"""Prompt assembly for the scoring stage."""

from __future__ import annotations

from .types import SpeechMetrics

SCORING_SYSTEM_PROMPT = (
    "You are an expert English speech evaluator trained on CEFR standards. "
    "You grade short spoken self-introductions from their transcript and "
    "answer with a single JSON object."
)

_SCORING_USER_TEMPLATE = """Analyze this {duration}-second introduction.

Transcript: "{transcript}"

Metrics: {word_count} words, {wpm} WPM

Evaluate strictly:
- Fluency: Natural pace (120-150 WPM ideal), smooth flow, minimal hesitations
- Pronunciation: Clear articulation (infer from text quality)
- Grammar: Proper tenses, subject-verb agreement, sentence variety
- Vocabulary: Range, accuracy, sophistication
- Confidence: Assertiveness, clarity, pace consistency
- Structure: Clear intro-body-conclusion, logical progression
- Filler Words: Penalize excessive hesitations (um, uh, like, you know)

Return ONLY this JSON (no markdown):
{{
  "scores": {{
    "overall": <0-100>,
    "fluency": <0-100>,
    "pronunciation": <0-100>,
    "grammar": <0-100>,
    "vocabulary": <0-100>,
    "confidence": <0-100>,
    "structure": <0-100>,
    "fillerWords": <0-100>
  }},
  "feedback": {{
    "detailed": "<2-3 sentences overall feedback>",
    "improvementTips": ["<tip1>", "<tip2>", "<tip3>"],
    "strengths": ["<strength1>", "<strength2>"],
    "areasToImprove": ["<area1>", "<area2>"]
  }}
}}

Score fairly. Be concise."""


def build_scoring_prompt(transcript: str, metrics: SpeechMetrics) -> str:
    """Render the user prompt embedding the transcript and speech-rate metrics."""

    return _SCORING_USER_TEMPLATE.format(
        duration=round(metrics.duration_seconds),
        transcript=transcript.replace('"', "'"),
        word_count=metrics.word_count,
        wpm=metrics.words_per_minute,
    )


__all__ = ["SCORING_SYSTEM_PROMPT", "build_scoring_prompt"]
