"""OpenAI adapter — implements the LlmGateway port."""

from __future__ import annotations

import logging

from openai import AsyncOpenAI, AuthenticationError, RateLimitError

from testgen.domain.exceptions import ConfigurationError, LlmError

logger = logging.getLogger(__name__)


class OpenAIAdapter:
    """Concrete ``LlmGateway`` backed by the OpenAI chat-completions API.

    Retries are disabled: a failed call is reported to the caller, which
    resolves it with a deterministic fallback.
    """

    def __init__(
        self,
        api_key: str | None,
        model: str = "gpt-4o-mini",
        *,
        temperature: float = 0.7,
        top_p: float = 0.95,
        max_output_tokens: int = 2048,
    ) -> None:
        if not api_key:
            raise ConfigurationError(
                "OPENAI_API_KEY environment variable is required for test generation."
            )
        self._client = AsyncOpenAI(api_key=api_key, max_retries=0)
        self._model = model
        self._temperature = temperature
        self._top_p = top_p
        self._max_output_tokens = max_output_tokens

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """Send a system + user prompt and return the completion text."""
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=self._temperature,
                top_p=self._top_p,
                max_tokens=self._max_output_tokens,
            )

            content = response.choices[0].message.content

            if not content:
                raise LlmError("LLM returned an empty response.")

            return content

        except AuthenticationError as exc:
            raise LlmError(
                "Invalid OpenAI API key. "
                "Set a valid key in the OPENAI_API_KEY environment variable."
            ) from exc

        except RateLimitError as exc:
            detail = str(exc)
            logger.error("OpenAI RateLimitError: %s", detail)
            raise LlmError(f"OpenAI rate limit / quota error: {detail}") from exc

        except LlmError:
            raise

        except Exception as exc:
            raise LlmError(f"LLM call failed: {exc}") from exc

    async def close(self) -> None:
        """Release underlying HTTP resources."""
        await self._client.close()
