"""
Unit Tests for AI Enrichment
============================

Tests for keyword fallback rules, model output post-processing, the
completion provider with a mocked OpenAI client and provider selection.
"""

import pytest
from unittest.mock import AsyncMock, Mock, patch

import openai
import requests

from newsagg.ai.fallback import (
    DEFAULT_CATEGORY,
    ELLIPSIS,
    basic_summary,
    categorize_by_keywords,
    category_keywords,
)
from newsagg.ai.quality import clean_model_summary, extract_category, is_valid_summary
from newsagg.ai.provider_factory import create_enrichment_provider
from newsagg.ai.providers.completion_provider import BackendHealth, CompletionEnrichmentProvider
from newsagg.ai.providers.keyword_provider import KeywordEnrichmentProvider
from newsagg.config.settings import AISettings, NewsAggSettings

ARTICLE_BODY = (
    "Совет директоров Банка России принял решение сохранить ключевую ставку. "
    "Регулятор отметил, что инфляция замедляется быстрее прогноза, а кредитная "
    "активность остается высокой. Следующее заседание запланировано на октябрь."
)

GOOD_SUMMARY = "Банк России сохранил ключевую ставку, так как инфляция замедляется."


def _completion(content):
    response = Mock()
    response.choices = [Mock(message=Mock(content=content))]
    return response


def _client(*contents, side_effect=None):
    client = Mock()
    client.chat.completions.create = AsyncMock(
        side_effect=side_effect or [_completion(c) for c in contents]
    )
    client.close = AsyncMock()
    return client


class TestKeywordCategorization:
    """Test deterministic category rules."""

    @pytest.mark.parametrize("title,expected", [
        ("Центробанк повысил ключевую ставку", "Экономика"),
        ("Президент подписал новый закон", "Политика"),
        ("Вышла новая версия Python", "Технологии"),
        ("Сборная выиграла решающий матч", "Спорт"),
        ("Ученые провели эксперимент на орбите", "Наука"),
        ("Открылась новая выставка в музее", "Культура"),
    ])
    def test_categories(self, title, expected):
        assert categorize_by_keywords(title, "") == expected

    def test_default_category(self):
        assert categorize_by_keywords("Погода в выходные", "Ожидается снег") == DEFAULT_CATEGORY

    def test_deterministic_examples(self):
        assert categorize_by_keywords("Курс доллара вырос", "Банк изменил ставку") == "Экономика"
        assert categorize_by_keywords("обычная новость", "что-то произошло") == DEFAULT_CATEGORY

    def test_order_economy_before_politics(self):
        assert categorize_by_keywords("Правительство обсудило бюджет", "Рубль вырос") == "Экономика"

    def test_short_stems_do_not_match_inside_words(self):
        assert categorize_by_keywords("Meeting with friends", "") == DEFAULT_CATEGORY
        assert categorize_by_keywords("Эмиду не видно", "Декод завершен") == DEFAULT_CATEGORY

    @pytest.mark.parametrize("title", [
        "Акции Газпрома подешевели",
        "Госдолг США превысил рекорд",
        "Торги на бирже завершились ростом",
        "Инвестфонд закрыл сделку",
    ])
    def test_economy_stems_match_inside_words(self, title):
        assert categorize_by_keywords(title, "") == "Экономика"

    def test_body_is_used(self):
        assert categorize_by_keywords("Новость дня", "Врач рассказал о лечении") == "Здоровье"

    def test_empty_input(self):
        assert categorize_by_keywords(None, None) == DEFAULT_CATEGORY

    def test_category_keywords_listing(self):
        keywords = category_keywords()
        assert list(keywords)[0] == "Экономика"
        assert "футбол" in keywords["Спорт"]


class TestBasicSummary:
    """Test sentence-boundary summaries."""

    def test_short_text_unchanged(self):
        assert basic_summary("Короткая новость.") == "Короткая новость."

    def test_empty(self):
        assert basic_summary(None) == ""

    def test_first_sentence_when_long_enough(self):
        first = ("слово " * 20).strip() + "."
        content = first + " " + "ещё " * 50
        assert basic_summary(content) == first

    def test_second_sentence_when_first_is_short(self):
        second = ("слово " * 15).strip() + "."
        content = "Коротко. " + second + " " + "хвост " * 40
        assert basic_summary(content) == "Коротко. " + second

    def test_word_cut_with_ellipsis(self):
        content = "слово " * 60
        summary = basic_summary(content)
        assert summary.endswith(ELLIPSIS)
        assert len(summary) < len(content)
        assert len(summary) <= 200

    def test_hard_cut(self):
        content = "а" * 500
        assert basic_summary(content) == "а" * 197 + ELLIPSIS

    def test_decimal_point_is_not_a_sentence_end(self):
        content = (
            "Инфляция в регионе по итогам квартала составила в годовом выражении около 7.5 процента "
            + "и продолжает постепенно расти " * 6
        )
        summary = basic_summary(content)

        assert "7.5 процента" in summary
        assert summary.endswith(ELLIPSIS)
        assert not summary.endswith("7.")

    def test_always_shorter_than_long_input(self):
        content = "x" * 201
        assert len(basic_summary(content)) < len(content)


class TestModelOutputProcessing:
    """Test category extraction and summary cleanup."""

    def test_extract_category_substring(self):
        assert extract_category("Категория: спорт.") == "Спорт"

    def test_extract_category_prefix(self):
        assert extract_category("Технол") == "Технологии"

    def test_extract_category_default(self):
        assert extract_category("Не знаю") == DEFAULT_CATEGORY
        assert extract_category("") == DEFAULT_CATEGORY

    def test_clean_model_summary_strips_label_and_quotes(self):
        assert clean_model_summary(f"Сводка: «{GOOD_SUMMARY}»") == GOOD_SUMMARY

    def test_clean_model_summary_strips_lead_phrase(self):
        assert clean_model_summary("В статье говорится о том, что цены выросли.") == "цены выросли."

    def test_quality_gate(self):
        assert is_valid_summary(GOOD_SUMMARY, ARTICLE_BODY)
        assert not is_valid_summary("Слишком коротко.", ARTICLE_BODY)
        assert not is_valid_summary(ARTICLE_BODY[:80], ARTICLE_BODY)
        assert not is_valid_summary("Нет знаков конца предложения в этой длинной сводке вообще", "")
        assert not is_valid_summary("### Заголовок\nИнфляция замедляется, ставка сохранена.", "")


class TestBackendHealth:
    def test_cooldown_after_consecutive_failures(self):
        health = BackendHealth(max_consecutive_failures=2, cooldown_seconds=60)
        assert not health.record_failure("boom")
        assert health.is_usable
        assert health.record_failure("boom")
        assert not health.is_usable

        health.record_success()
        assert health.is_usable
        assert health.consecutive_failures == 0
        assert health.total_failures == 2


class TestCompletionEnrichmentProvider:
    """Test the remote provider with a mocked client."""

    def setup_method(self):
        self.settings = AISettings(
            enabled=True,
            api_url="http://localhost:1234/v1/",
            max_consecutive_failures=2,
            failure_cooldown_seconds=300,
        )

    def _provider(self, client):
        return CompletionEnrichmentProvider(self.settings, client=client)

    def test_settings_normalization(self):
        provider = self._provider(_client())
        assert self.settings.api_url == "http://localhost:1234/v1"
        assert provider.model == "local-model"
        assert provider.is_configured()

    @pytest.mark.asyncio
    async def test_enrich_uses_model_answers(self):
        client = _client("Экономика", f"Сводка: {GOOD_SUMMARY}")
        provider = self._provider(client)

        result = await provider.enrich("Ставка сохранена", ARTICLE_BODY)

        assert result.category == "Экономика"
        assert result.summary == GOOD_SUMMARY
        assert result.provider == "completion"

        first_call = client.chat.completions.create.call_args_list[0].kwargs
        assert first_call["model"] == "local-model"
        assert first_call["max_tokens"] == 50
        assert first_call["temperature"] == 0.3
        assert first_call["messages"][0]["role"] == "system"
        assert "Ставка сохранена. " in first_call["messages"][1]["content"]
        assert client.chat.completions.create.call_args_list[1].kwargs["max_tokens"] == 200

    @pytest.mark.asyncio
    async def test_invalid_summary_falls_back(self):
        provider = self._provider(_client("```json```"))
        summary = await provider.summarize(ARTICLE_BODY)
        assert summary == basic_summary(ARTICLE_BODY)

    @pytest.mark.asyncio
    async def test_connection_error_falls_back(self):
        client = _client(side_effect=openai.APIConnectionError(request=Mock()))
        provider = self._provider(client)

        category = await provider.categorize("Матч", "Команда выиграла финал")

        assert category == "Спорт"
        assert provider.health.consecutive_failures == 1

    @pytest.mark.asyncio
    async def test_malformed_response_falls_back(self):
        empty = Mock()
        empty.choices = []
        client = _client(side_effect=[empty])
        provider = self._provider(client)

        assert await provider.categorize("Центробанк", "") == "Экономика"
        assert provider.health.last_error is not None

    @pytest.mark.asyncio
    async def test_cooldown_bypasses_backend(self):
        client = _client(side_effect=openai.APITimeoutError(request=Mock()))
        provider = self._provider(client)

        for _ in range(3):
            assert await provider.categorize("Центробанк", "") == "Экономика"

        assert client.chat.completions.create.call_count == 2
        assert not provider.health.is_usable

    @patch("newsagg.ai.providers.completion_provider.requests.get")
    def test_is_available(self, mock_get):
        mock_get.return_value = Mock(status_code=200)
        assert self._provider(_client()).is_available()
        mock_get.assert_called_once_with("http://localhost:1234/v1/models", timeout=5)

        mock_get.side_effect = requests.ConnectionError("refused")
        assert not self._provider(_client()).is_available()

    @patch("newsagg.ai.providers.completion_provider.requests.get")
    def test_get_available_models(self, mock_get):
        response = Mock()
        response.json.return_value = {"data": [{"id": "qwen2.5-7b"}, {"id": "llama-3"}]}
        mock_get.return_value = response

        assert self._provider(_client()).get_available_models() == ["qwen2.5-7b", "llama-3"]

    @pytest.mark.asyncio
    async def test_close(self):
        client = _client()
        await self._provider(client).close()
        client.close.assert_awaited_once()


class TestKeywordProvider:
    @pytest.mark.asyncio
    async def test_enrich(self):
        provider = KeywordEnrichmentProvider()
        result = await provider.enrich("Центробанк сохранил ставку", ARTICLE_BODY)
        assert result.category == "Экономика"
        assert result.summary == basic_summary(ARTICLE_BODY)
        assert provider.is_available() and provider.is_configured()

    def test_enrich_sync_marks_fallback(self):
        result = KeywordEnrichmentProvider().enrich_sync("Матч", "")
        assert result.used_fallback
        assert result.category == "Спорт"


class TestProviderFactory:
    def test_disabled_backend_uses_keywords(self):
        settings = NewsAggSettings(ai=AISettings(enabled=False))
        assert isinstance(create_enrichment_provider(settings), KeywordEnrichmentProvider)

    def test_enabled_backend_uses_completion(self):
        settings = NewsAggSettings(ai=AISettings(enabled=True, api_url="http://llm.local:1234/v1"))
        assert isinstance(create_enrichment_provider(settings), CompletionEnrichmentProvider)
