"""
Completion Enrichment Provider
==============================

Category and summary generation through an OpenAI-compatible chat
completion endpoint (LM Studio, llama.cpp server, vLLM...). Every failure
of the backend degrades to the keyword provider for that call; after
repeated failures the backend is bypassed for a cool-down period.
"""

import time
from dataclasses import dataclass
from typing import List, Optional

import openai
import requests

from .base import EnrichmentProvider
from .keyword_provider import KeywordEnrichmentProvider
from ..fallback import AI_CATEGORIES, DEFAULT_CATEGORY
from ..quality import clean_model_summary, extract_category, is_valid_summary
from ...config.settings import AISettings, get_settings
from ...utils.exceptions import AIError, ErrorCode
from ...utils.logging import get_logger_for_component

SYSTEM_PROMPT = "Ты - помощник для анализа новостных статей на русском языке."

CLASSIFICATION_PROMPT = (
    "Определи категорию для следующей новостной статьи. "
    "Выбери ОДНУ категорию из списка: {categories}.\n\n"
    "Статья: {article}\n\n"
    "Ответь ТОЛЬКО названием категории, без дополнительных объяснений."
)

SUMMARY_PROMPT = (
    "Создай очень краткую сводку следующей новостной статьи на русском языке. "
    "Сводка должна быть максимально сжатой и содержать только главную суть. "
    "Длина сводки: 1-2 предложения (максимум 150 символов). "
    "Не добавляй вводные фразы типа 'В статье говорится' или 'Сводка:'. "
    "Начинай сразу с сути.\n\n"
    "Статья: {article}\n\n"
    "Краткая сводка:"
)

CLASSIFICATION_BODY_CHARS = 500
SUMMARY_BODY_CHARS = 2000


@dataclass
class BackendHealth:
    """Consecutive-failure tracking with a cool-down."""
    max_consecutive_failures: int = 3
    cooldown_seconds: float = 300.0
    consecutive_failures: int = 0
    total_failures: int = 0
    cooldown_until: Optional[float] = None
    last_error: Optional[str] = None

    @property
    def is_usable(self) -> bool:
        return self.cooldown_until is None or time.monotonic() >= self.cooldown_until

    def record_success(self) -> None:
        self.consecutive_failures = 0
        self.cooldown_until = None
        self.last_error = None

    def record_failure(self, message: str) -> bool:
        """Record a failure; True when this failure started a cool-down."""
        self.consecutive_failures += 1
        self.total_failures += 1
        self.last_error = message
        if self.consecutive_failures >= self.max_consecutive_failures:
            self.cooldown_until = time.monotonic() + self.cooldown_seconds
            return True
        return False


class CompletionEnrichmentProvider(EnrichmentProvider):
    """Enrichment through a chat completion API with keyword fallback."""

    provider_name = "completion"

    def __init__(
        self,
        settings: Optional[AISettings] = None,
        client: Optional[openai.AsyncOpenAI] = None,
        fallback: Optional[EnrichmentProvider] = None,
        categories: Optional[List[str]] = None,
    ):
        self.settings = settings or get_settings().ai
        self.model = self.settings.effective_model
        self.categories = list(categories or AI_CATEGORIES)
        self.fallback = fallback or KeywordEnrichmentProvider()
        self.logger = get_logger_for_component("ai")
        self.health = BackendHealth(
            max_consecutive_failures=self.settings.max_consecutive_failures,
            cooldown_seconds=self.settings.failure_cooldown_seconds,
        )
        self.client = client or openai.AsyncOpenAI(
            api_key=self.settings.api_key or "not-needed",
            base_url=self.settings.api_url,
            timeout=self.settings.timeout,
            max_retries=0,
        )

    def is_configured(self) -> bool:
        return self.settings.enabled and bool(self.settings.api_url)

    def is_available(self) -> bool:
        """Probe ``GET {api_url}/models``."""
        if not self.settings.enabled:
            return False
        try:
            response = requests.get(
                f"{self.settings.api_url}/models", timeout=self.settings.probe_timeout
            )
            return response.status_code == 200
        except requests.RequestException as e:
            self.logger.debug(f"AI backend probe failed: {e}")
            return False

    def get_available_models(self) -> List[str]:
        """Model ids reported by the backend; empty when unreachable."""
        if not self.settings.enabled:
            return []
        try:
            response = requests.get(
                f"{self.settings.api_url}/models", timeout=self.settings.probe_timeout
            )
            response.raise_for_status()
            return [item["id"] for item in response.json().get("data", []) if item.get("id")]
        except (requests.RequestException, ValueError, KeyError, TypeError, AttributeError) as e:
            self.logger.warning(f"Could not list AI models: {e}")
            return []

    async def categorize(self, title: str, body: str) -> str:
        if not self.health.is_usable:
            return await self.fallback.categorize(title, body)

        article = title or ""
        if body:
            article = f"{article}. {body[:CLASSIFICATION_BODY_CHARS]}"
        prompt = CLASSIFICATION_PROMPT.format(
            categories=", ".join(self.categories), article=article
        )

        try:
            answer = await self._complete(prompt, self.settings.classification_max_tokens)
        except AIError as e:
            self._record_failure(e)
            return await self.fallback.categorize(title, body)

        category = extract_category(answer, self.categories, DEFAULT_CATEGORY)
        self.logger.debug(f"AI category '{category}' from answer {answer[:40]!r}")
        return category

    async def summarize(self, body: str) -> str:
        if not body or not self.health.is_usable:
            return await self.fallback.summarize(body)

        prompt = SUMMARY_PROMPT.format(article=body[:SUMMARY_BODY_CHARS])
        try:
            answer = await self._complete(prompt, self.settings.summary_max_tokens)
        except AIError as e:
            self._record_failure(e)
            return await self.fallback.summarize(body)

        summary = clean_model_summary(answer)
        if not is_valid_summary(summary, body):
            self.logger.debug("AI summary rejected by quality gate, using fallback")
            return await self.fallback.summarize(body)
        return summary

    async def _complete(self, prompt: str, max_tokens: int) -> str:
        """One chat completion; raises AIError for every failure mode."""
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=self.settings.temperature,
                max_tokens=max_tokens,
                timeout=self.settings.timeout,
            )
        except openai.APITimeoutError as e:
            raise AIError(f"AI request timed out: {e}", provider=self.provider_name,
                          model=self.model, error_code=ErrorCode.AI_TIMEOUT) from e
        except openai.RateLimitError as e:
            raise AIError(f"AI rate limit: {e}", provider=self.provider_name,
                          model=self.model, error_code=ErrorCode.AI_RATE_LIMIT) from e
        except openai.APIConnectionError as e:
            raise AIError(f"AI backend unreachable: {e}", provider=self.provider_name,
                          model=self.model, error_code=ErrorCode.AI_CONNECTION_ERROR) from e
        except openai.APIError as e:
            raise AIError(f"AI API error: {e}", provider=self.provider_name,
                          model=self.model, error_code=ErrorCode.AI_API_ERROR) from e

        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError, TypeError) as e:
            raise AIError("Malformed completion response", provider=self.provider_name,
                          model=self.model, error_code=ErrorCode.AI_INVALID_RESPONSE) from e

        if not content or not content.strip():
            raise AIError("Empty completion response", provider=self.provider_name,
                          model=self.model, error_code=ErrorCode.AI_INVALID_RESPONSE)
        self.health.record_success()
        return content.strip()

    def _record_failure(self, error: AIError) -> None:
        started_cooldown = self.health.record_failure(str(error))
        if started_cooldown:
            self.logger.warning(
                f"AI backend failed {self.health.consecutive_failures} times in a row, "
                f"bypassing it for {self.health.cooldown_seconds:.0f}s",
                extra=error.to_dict(),
            )
        else:
            self.logger.info(f"AI request failed, using keyword fallback: {error}")

    async def close(self) -> None:
        await self.client.close()
