"""
Results Narrator - async wrapper around the summary generator

The summary call is slow, remote, and optional. This wrapper:
- Runs the blocking Gemini call in a worker thread with a timeout
- Converts every failure into a fallback narrative (tally stays usable)
- Marks results that arrive after a newer request started as stale
"""

import asyncio
from dataclasses import dataclass
from typing import Optional

from analysis.llm.summarizer import GeminiSummarizer
from config import get_logger
from election.tally import TallyResult
from exceptions import CollaboratorUnavailableError, LLMError
from server.metrics import metrics

logger = get_logger(__name__).bind(component="narrator")

FALLBACK_MESSAGE = (
    "The results summary could not be generated right now. "
    "The vote count above is complete and up to date; please try again later."
)


@dataclass(frozen=True)
class Narrative:
    text: str
    available: bool
    stale: bool = False
    generation: int = 0

    def to_dict(self) -> dict:
        return {
            "text": self.text,
            "available": self.available,
            "stale": self.stale,
            "generation": self.generation,
        }


class ResultsNarrator:
    """Fire-and-forget narrative generation; never touches the tally"""

    def __init__(self, summarizer: Optional[GeminiSummarizer], timeout_seconds: float):
        self.summarizer = summarizer
        self.timeout_seconds = timeout_seconds
        self.latest: Optional[Narrative] = None
        self._generation = 0

    @property
    def enabled(self) -> bool:
        return self.summarizer is not None

    async def _generate(self, result: TallyResult) -> str:
        """Call the summarizer off the event loop

        Raises:
            CollaboratorUnavailableError: Not configured, failed, or timed out
        """
        if self.summarizer is None:
            raise CollaboratorUnavailableError("Summary generator not configured", reason="no_api_key")

        try:
            return await asyncio.wait_for(
                asyncio.to_thread(
                    self.summarizer.summarize_results,
                    result.ranking,
                    result.elected,
                    result.seats,
                ),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise CollaboratorUnavailableError(
                f"Summary generator timed out after {self.timeout_seconds}s",
                reason="timeout",
                original_error=e,
            ) from e
        except LLMError as e:
            raise CollaboratorUnavailableError(
                "Summary generator failed", reason="llm_error", original_error=e
            ) from e
        except Exception as e:
            logger.exception("summary generator raised unexpectedly")
            raise CollaboratorUnavailableError(
                "Summary generator failed", reason="error", original_error=e
            ) from e

    async def narrate(self, result: TallyResult) -> Narrative:
        """Produce a narrative for the given tally, or the fallback text"""
        self._generation += 1
        generation = self._generation

        try:
            text = await self._generate(result)
            narrative = Narrative(text=text, available=True, generation=generation)
        except CollaboratorUnavailableError as e:
            metrics.record_error(component="narrator", error=e)
            logger.warning("summary unavailable, using fallback", reason=e.reason, error=str(e))
            narrative = Narrative(text=FALLBACK_MESSAGE, available=False, generation=generation)

        if generation != self._generation:
            logger.info("discarding stale summary", generation=generation, latest=self._generation)
            return Narrative(
                text=narrative.text,
                available=narrative.available,
                stale=True,
                generation=generation,
            )

        self.latest = narrative
        return narrative
