"""
Async OpenAI client wrapper with token management and error handling.
Works against OpenAI or any OpenAI-compatible API (e.g. Groq) via LLM_BASE_URL.
"""

import json
import os
import logging
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from openai import AsyncOpenAI
from openai import APIError, RateLimitError, APITimeoutError

logger = logging.getLogger(__name__)

load_dotenv()

DEFAULT_MODEL = "gpt-4o-mini"


class LLMClient:
    """
    Async wrapper for chat-completion APIs with token budget management.

    Configuration (constructor arguments win over environment):
    - OPENAI_API_KEY or LLM_API_KEY: API key (required)
    - LLM_BASE_URL: OpenAI-compatible endpoint, e.g. https://api.groq.com/openai/v1
    - LLM_MODEL: model name (default gpt-4o-mini)
    """

    # Token limits; session transcripts are long, answers are structured JSON
    MAX_INPUT_TOKENS = 12000
    MAX_OUTPUT_TOKENS = 1500
    REQUEST_TIMEOUT_S = 30.0

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
    ):
        """
        Initialize the async client.

        Args:
            api_key: API key (defaults to OPENAI_API_KEY, then LLM_API_KEY)
            model: Model to use (defaults to LLM_MODEL, then gpt-4o-mini)
            base_url: OpenAI-compatible base URL (defaults to LLM_BASE_URL)
        """
        self.api_key = api_key or os.getenv("OPENAI_API_KEY") or os.getenv("LLM_API_KEY")
        if not self.api_key:
            raise ValueError(
                "LLM API key required. Set OPENAI_API_KEY (or LLM_API_KEY) environment "
                "variable or pass api_key parameter."
            )

        self.base_url = base_url or os.getenv("LLM_BASE_URL") or None
        self.client = AsyncOpenAI(api_key=self.api_key, base_url=self.base_url)
        self.model = model or os.getenv("LLM_MODEL") or DEFAULT_MODEL

        logger.info(f"LLMClient initialized with model: {self.model}")

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_retries: int = 2,
        json_mode: bool = False,
    ) -> str:
        """
        Generate completion with token management and retry logic.

        Args:
            system_prompt: System instructions
            user_prompt: User query
            temperature: Sampling temperature
            max_retries: Number of retry attempts on rate limits and timeouts
            json_mode: Ask the API for a JSON object response

        Returns:
            Generated response text

        Raises:
            RuntimeError: If all retries fail
        """
        # Rough estimation: ~4 chars per token
        estimated_input_tokens = (len(system_prompt) + len(user_prompt)) // 4
        if estimated_input_tokens > self.MAX_INPUT_TOKENS:
            logger.warning(
                f"Input may exceed token budget: ~{estimated_input_tokens} tokens "
                f"(limit: {self.MAX_INPUT_TOKENS})"
            )

        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]
        extra: Dict[str, Any] = {"response_format": {"type": "json_object"}} if json_mode else {}

        for attempt in range(max_retries + 1):
            try:
                logger.debug(f"Requesting completion (attempt {attempt + 1}/{max_retries + 1})")

                response = await self.client.chat.completions.create(
                    model=self.model,
                    messages=messages,
                    temperature=temperature,
                    max_tokens=self.MAX_OUTPUT_TOKENS,
                    timeout=self.REQUEST_TIMEOUT_S,
                    **extra,
                )

                content = response.choices[0].message.content or ""

                usage = response.usage
                if usage is not None:
                    logger.info(
                        f"Completion successful - Tokens: {usage.prompt_tokens} in, "
                        f"{usage.completion_tokens} out, {usage.total_tokens} total"
                    )

                return content

            except RateLimitError as e:
                logger.warning(f"Rate limit hit (attempt {attempt + 1}): {e}")
                if attempt == max_retries:
                    raise RuntimeError("LLM rate limit exceeded. Try again later.")

            except APITimeoutError as e:
                logger.warning(f"Timeout (attempt {attempt + 1}): {e}")
                if attempt == max_retries:
                    raise RuntimeError("LLM request timed out. Try again later.")

            except APIError as e:
                logger.error(f"LLM API error: {e}")
                raise RuntimeError(f"AI service error: {str(e)}")

        raise RuntimeError("Failed to get completion after all retries")

    async def complete_json(
        self,
        system_prompt: str,
        user_prompt: str,
        max_retries: int = 2,
    ) -> Dict[str, Any]:
        """
        Completion parsed as a JSON object.

        Raises:
            RuntimeError: If the call fails or the reply is not a JSON object
        """
        content = await self.complete(
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            temperature=0.2,
            max_retries=max_retries,
            json_mode=True,
        )
        try:
            parsed = json.loads(content)
        except ValueError as e:
            logger.error(f"LLM returned invalid JSON: {e}")
            raise RuntimeError("AI service returned malformed JSON")

        if not isinstance(parsed, dict):
            raise RuntimeError("AI service returned a non-object JSON response")
        return parsed
