"""
Gemini Results Summarizer - narrative announcement for election results

Responsibilities:
- Load prompts from prompts.json
- Build a deterministic prompt from the ranked tally and the elected subset
- Call Gemini with retry on 429 rate limits
- Return the text untouched (no parsing or validation of the content)
"""

import os
import json
import re
import time
from typing import Optional, Sequence
from importlib.resources import files

from google import genai
from google.genai import types

from config import config, get_logger
from election.tally import RankedCandidate
from server.metrics import metrics
from exceptions import LLMError

logger = get_logger(__name__).bind(component="summarizer")


class GeminiSummarizer:
    """Turns a ranked tally into an official announcement"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        prompts_path: Optional[str] = None,
        client=None,
        model_name: Optional[str] = None,
        organization: Optional[str] = None,
    ):
        """Initialize summarizer

        Args:
            api_key: Gemini API key (defaults to env vars)
            prompts_path: Path to prompts.json (defaults to package resource)
            client: Preconfigured genai client (tests pass a fake)
            model_name: Gemini model (defaults to config)
            organization: Name used in the announcement (defaults to config)
        """
        if client is None:
            self.api_key = (
                api_key or os.getenv("GEMINI_API_KEY") or os.getenv("LLM_API_KEY")
            )
            if not self.api_key:
                raise ValueError(
                    "API key required - set GEMINI_API_KEY or LLM_API_KEY environment variable"
                )
            client = genai.Client(api_key=self.api_key)

        self.client = client
        self.model_name = model_name or config.GEMINI_MODEL
        self.organization = organization or config.ORGANIZATION

        if prompts_path is None:
            # Load from package resources (works in installed packages)
            prompts_text = files("analysis.llm").joinpath("prompts.json").read_text()
            self.prompts = json.loads(prompts_text)
        else:
            with open(prompts_path, "r") as f:
                self.prompts = json.load(f)

        logger.info("prompts loaded", prompt_categories=len(self.prompts), model=self.model_name)

    def _get_prompt(self, category: str, prompt_type: str, **variables) -> str:
        """Get prompt from JSON and format with variables"""
        try:
            template = self.prompts[category][prompt_type]["template"]
        except KeyError as e:
            raise ValueError(f"Prompt not found: {category}.{prompt_type}") from e

        try:
            return template.format(**variables)
        except KeyError as e:
            raise ValueError(
                f"Missing variable for prompt {category}.{prompt_type}: {e}"
            ) from e

    def build_prompt(
        self,
        ranking: Sequence[RankedCandidate],
        elected: Sequence[RankedCandidate],
        seats: int,
    ) -> str:
        """Deterministic prompt: numbered results plus the elected names"""
        candidate_list = "\n".join(
            f"{r.position}. {r.name}: {r.votes} votes" for r in ranking
        )
        elected_list = ", ".join(r.name for r in elected)
        return self._get_prompt(
            "results",
            "announcement",
            organization=self.organization,
            seats=seats,
            candidate_list=candidate_list,
            elected_list=elected_list,
        )

    def _call_with_retry(self, prompt: str, generation_config, max_retries: int = 3):
        """Call Gemini, honouring retryDelay on 429 responses

        Raises:
            LLMError: If max retries exceeded
            Exception: Any non-rate-limit error, unchanged
        """
        last_error = None

        for attempt in range(max_retries):
            try:
                return self.client.models.generate_content(
                    model=self.model_name, contents=prompt, config=generation_config
                )

            except Exception as e:
                last_error = e
                error_str = str(e)

                if "429" in error_str or "RESOURCE_EXHAUSTED" in error_str:
                    retry_match = re.search(r'"retryDelay":\s*"(\d+)s"', error_str)
                    if retry_match:
                        delay = int(retry_match.group(1)) + 1
                    else:
                        delay = 5 * (attempt + 1)

                    logger.warning(
                        "rate limited by gemini, waiting for retry",
                        attempt=attempt + 1,
                        max_retries=max_retries,
                        delay_seconds=delay
                    )
                    time.sleep(delay)
                    continue

                raise

        raise LLMError(
            f"Max retries ({max_retries}) exceeded due to rate limiting",
            model=self.model_name,
            prompt_type="results_announcement",
            original_error=last_error
        )

    def summarize_results(
        self,
        ranking: Sequence[RankedCandidate],
        elected: Sequence[RankedCandidate],
        seats: int,
    ) -> str:
        """Generate the announcement text

        Raises:
            LLMError: On a bad prompt template, any API failure or an empty response
        """
        generation_config = types.GenerateContentConfig(
            temperature=0.7,
            max_output_tokens=4096,
        )

        logger.info("generating results summary", candidates=len(ranking), seats=seats)
        start_time = time.time()

        try:
            prompt = self.build_prompt(ranking, elected, seats)
            response = self._call_with_retry(prompt, generation_config)
            text = getattr(response, "text", None)
            if not text:
                raise ValueError("Gemini returned no text in response")

            duration = time.time() - start_time
            metrics.record_llm_call(model=self.model_name, duration_seconds=duration, success=True)
            logger.info("results summary generated", duration_seconds=round(duration, 1), chars=len(text))
            return text

        except LLMError:
            metrics.record_llm_call(model=self.model_name, duration_seconds=time.time() - start_time, success=False)
            raise

        except Exception as e:
            duration = time.time() - start_time
            metrics.record_llm_call(model=self.model_name, duration_seconds=duration, success=False)
            metrics.record_error(component="summarizer", error=e)
            logger.error(
                "results summary failed",
                duration_seconds=round(duration, 1),
                error=str(e),
                error_type=type(e).__name__
            )
            raise LLMError(
                f"Results summary failed after {duration:.1f}s",
                model=self.model_name,
                prompt_type="results_announcement",
                original_error=e
            ) from e
