"""Run one audio file through both pipeline stages without touching the database.

Usage: python scripts/evaluate_sample.py path/to/audio.webm [duration_seconds]
"""

import asyncio
import json
import os
import sys

# Add project root to path so we can import app
sys.path.append(os.getcwd())

from app.pipelines.evaluation import ScoringStage, TranscriptionStage
from app.services.engines import build_engines


async def main():
    if len(sys.argv) < 2:
        print("Usage: python scripts/evaluate_sample.py path/to/audio [duration_seconds]")
        return

    file_path = sys.argv[1]
    duration = float(sys.argv[2]) if len(sys.argv) > 2 else None

    if not os.path.exists(file_path):
        print(f"File '{file_path}' not found.")
        return

    engines = build_engines()
    print(
        f"Speech engine available: {engines.speech_available}, "
        f"evaluation engine available: {engines.evaluation_available}"
    )

    transcription = await TranscriptionStage(engines.speech).transcribe(file_path, duration)
    print(f"\n--- Transcript ({transcription.source.value}) ---")
    print(transcription.text)
    print(f"Words: {transcription.word_count}, WPM: {transcription.words_per_minute}")

    result = await ScoringStage(engines.evaluation).score(transcription.text, duration)
    print(f"\n--- Scores ({result.source.value}) ---")
    print(json.dumps(result.scores.model_dump(by_alias=True), indent=2))
    print("\n--- Feedback ---")
    print(json.dumps(result.feedback.model_dump(by_alias=True), indent=2))


if __name__ == "__main__":
    asyncio.run(main())
