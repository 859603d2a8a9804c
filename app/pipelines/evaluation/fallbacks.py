"""Deterministic local substitutes used when an engine cannot be relied on."""

from __future__ import annotations

import posixpath

from app.config.settings import settings
from app.services.response_contract import SpeechFeedback, SpeechScores

from .types import ResultSource, ScoringResult, SpeechMetrics

NEUTRAL_SCORE = 50

DEFAULT_FEEDBACK_MESSAGE = "Evaluation could not be completed. Please try again."

FAILURE_FEEDBACK = SpeechFeedback(
    detailed="Evaluation failed. Please contact support.",
    improvement_tips=["Try recording again with clearer audio"],
    strengths=[],
    areas_to_improve=[],
)

FALLBACK_TRANSCRIPTS: tuple[str, ...] = (
    "Hello, my name is Alex Johnson and I'm excited to introduce myself. I'm a "
    "software engineer with five years of experience in full-stack development. "
    "I've worked on various projects involving React, Node.js, and cloud "
    "technologies. I'm passionate about creating user-friendly applications and "
    "solving complex problems. In my free time, I enjoy learning new technologies "
    "and contributing to open source projects.",
    "Hi everyone, I'm Sarah Martinez. I graduated from Stanford University with a "
    "degree in Computer Science. For the past three years, I've been working as a "
    "data scientist at a tech startup. My expertise includes machine learning, "
    "Python, and data visualization. I love working with data to extract "
    "meaningful insights. Outside of work, I'm an avid reader and enjoy hiking on "
    "weekends.",
    "Good day, my name is Michael Chen. I have a background in business "
    "administration and project management. I've successfully led teams of up to "
    "15 people in delivering enterprise software solutions. My strengths include "
    "strategic planning, stakeholder management, and agile methodologies. I'm "
    "known for my ability to bridge the gap between technical teams and business "
    "stakeholders. I believe in continuous learning and recently completed a "
    "certification in cloud architecture.",
    "Hello, I'm Priya Patel, and I'm thrilled to be here. I'm a creative "
    "professional with expertise in UI/UX design. Over the past four years, I've "
    "worked with various clients to create intuitive and visually appealing "
    "digital experiences. I'm proficient in tools like Figma, Adobe Creative "
    "Suite, and have a solid understanding of front-end technologies. My design "
    "philosophy centers around user-centered design and accessibility. When I'm "
    "not designing, you'll find me sketching or exploring art galleries.",
    "Hi there, I'm James Wilson. I'm an experienced marketing professional "
    "specializing in digital marketing and brand strategy. I've helped multiple "
    "companies grow their online presence through content marketing, SEO, and "
    "social media campaigns. My analytical approach combined with creativity has "
    "delivered measurable results. I hold a master's degree in marketing and stay "
    "updated with the latest industry trends. I'm passionate about storytelling "
    "and building authentic connections with audiences.",
)


def audio_fingerprint(audio_reference: str) -> int:
    """Sum of the code points of the reference's base name."""

    name = posixpath.basename(audio_reference.replace("\\", "/"))
    return sum(ord(char) for char in name)


def fallback_transcript(audio_reference: str) -> str:
    """Pick a canned transcript; the same reference always maps to the same text."""

    index = audio_fingerprint(audio_reference) % len(FALLBACK_TRANSCRIPTS)
    return FALLBACK_TRANSCRIPTS[index]


def speech_metrics(text: str, duration_seconds: float | None) -> SpeechMetrics:
    """Word count and words-per-minute for a transcript."""

    duration = duration_seconds
    if duration is None or duration <= 0:
        duration = settings.pipeline.default_duration_seconds
    word_count = len(text.split())
    return SpeechMetrics(
        word_count=word_count,
        words_per_minute=round(word_count / duration * 60),
        duration_seconds=float(duration),
    )


def default_scoring_result() -> ScoringResult:
    return ScoringResult(
        scores=SpeechScores.uniform(NEUTRAL_SCORE),
        feedback=SpeechFeedback(
            detailed=DEFAULT_FEEDBACK_MESSAGE,
            improvement_tips=["Practice more", "Focus on clarity", "Build confidence"],
            strengths=["Participated in the challenge"],
            areas_to_improve=["All aspects need more practice"],
        ),
        source=ResultSource.FALLBACK,
    )


__all__ = [
    "DEFAULT_FEEDBACK_MESSAGE",
    "FAILURE_FEEDBACK",
    "FALLBACK_TRANSCRIPTS",
    "NEUTRAL_SCORE",
    "audio_fingerprint",
    "default_scoring_result",
    "fallback_transcript",
    "speech_metrics",
]
