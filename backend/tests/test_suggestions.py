"""OpenAI-backed categorization and tips with keyword fallback."""

from __future__ import annotations

import json
from datetime import date
from types import SimpleNamespace

from openai import OpenAIError

from app.config import AppSettings
from app.services.suggestions import OpenAICategorizer, build_categorizer, parse_tips, suggest_tips
from finance_cloud.categorizer import KeywordCategorizer
from finance_cloud.models import LedgerTransaction
from finance_cloud.reports import build_report


class StubResponses:
    def __init__(self, output_text: str | None = None, error: Exception | None = None) -> None:
        self.output_text = output_text
        self.error = error
        self.calls: list[dict[str, object]] = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(output_text=self.output_text)


def _client(output_text: str | None = None, error: Exception | None = None) -> SimpleNamespace:
    return SimpleNamespace(responses=StubResponses(output_text, error))


def _summary():
    transactions = [
        LedgerTransaction(id="t1", occurred_at=date(2024, 6, 3), type="expense", amount=80, description="iFood"),
    ]
    return build_report(transactions, "2024-06", today=date(2024, 6, 30)).summary


def test_ai_labels_are_validated():
    client = _client(json.dumps({"categories": ["Lazer", "Made Up"]}))
    categorizer = OpenAICategorizer(client, "gpt-4o-mini")

    labels = categorizer.categorize(["Cinema", "Uber"])

    assert labels == ["Lazer", "Transporte"]
    assert client.responses.calls[0]["model"] == "gpt-4o-mini"


def test_ai_failure_falls_back_to_keywords():
    for client in (
        _client(error=OpenAIError("quota exceeded")),
        _client("not json"),
        _client(json.dumps({"categories": ["Lazer"]})),
    ):
        assert OpenAICategorizer(client, "gpt-4o-mini").categorize(["Uber", "Netflix"]) == [
            "Transporte",
            "Assinaturas",
        ]


def test_build_categorizer_needs_key_or_client():
    assert isinstance(build_categorizer(AppSettings(openai_api_key=None)), KeywordCategorizer)
    assert isinstance(build_categorizer(AppSettings(openai_api_key=None), _client("{}")), OpenAICategorizer)


def test_parse_tips_strips_bullets():
    text = "- Cut delivery spending\n- ok\n2. Review subscriptions monthly\n* cut delivery spending\n- Save 10% of income"

    assert parse_tips(text) == ["Cut delivery spending", "Review subscriptions monthly", "Save 10% of income"]


def test_suggest_tips():
    settings = AppSettings(openai_api_key=None)

    assert suggest_tips(_summary(), settings) == []
    assert suggest_tips(_summary(), settings, _client("- Plan meals for the week")) == ["Plan meals for the week"]
    assert suggest_tips(_summary(), settings, _client(error=OpenAIError("down"))) == []
