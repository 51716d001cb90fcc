"""Text-suggestion provider: category labels and short tips from OpenAI.

Every call degrades to a deterministic local answer when no API key is
configured or the request fails, so callers never branch on availability.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Sequence

from openai import OpenAI, OpenAIError

from app.config import AppSettings
from finance_cloud.categorizer import CATEGORY_RULES, DEFAULT_CATEGORY, Categorizer, KeywordCategorizer
from finance_cloud.models import MonthlyReportSummary
from finance_cloud.reports import dedupe_lines, format_money, format_percent

logger = logging.getLogger(__name__)

MAX_TIPS = 3
_BULLET_PREFIX = re.compile(r"^[-*•\d.)\s]+")
_ALLOWED_CATEGORIES = [category for category, _ in CATEGORY_RULES] + [DEFAULT_CATEGORY]


class OpenAICategorizer:
    """Categorizes descriptions with an LLM, falling back to keyword matching."""

    def __init__(self, client: Any, model: str, fallback: Categorizer | None = None):
        self._client = client
        self._model = model
        self._fallback = fallback or KeywordCategorizer()

    def categorize(self, descriptions: Sequence[str]) -> list[str]:
        if not descriptions:
            return []
        try:
            response = self._client.responses.create(
                model=self._model,
                input=[
                    {
                        "role": "system",
                        "content": (
                            "Classify each personal-finance transaction description into one of these "
                            f"categories: {', '.join(_ALLOWED_CATEGORIES)}. "
                            'Return JSON: {"categories": [...]} with one label per description, in order.'
                        ),
                    },
                    {"role": "user", "content": json.dumps(list(descriptions), ensure_ascii=True)},
                ],
            )
            labels = json.loads(response.output_text)["categories"]
        except (OpenAIError, ValueError, KeyError, TypeError) as exc:
            logger.warning("AI categorization failed, using keyword rules: %s", exc)
            return self._fallback.categorize(descriptions)

        if not isinstance(labels, list) or len(labels) != len(descriptions):
            logger.warning("AI categorization returned %s labels for %d descriptions", type(labels), len(descriptions))
            return self._fallback.categorize(descriptions)

        keyword_labels = self._fallback.categorize(descriptions)
        return [
            label.strip() if isinstance(label, str) and label.strip() in _ALLOWED_CATEGORIES else keyword
            for label, keyword in zip(labels, keyword_labels)
        ]


def _openai_client(settings: AppSettings) -> OpenAI:
    return OpenAI(api_key=settings.openai_api_key, timeout=settings.openai_timeout_seconds)


def build_categorizer(settings: AppSettings, client: Any | None = None) -> Categorizer:
    """Select the live adapter only when an API key is configured."""

    if client is None and not settings.openai_api_key:
        return KeywordCategorizer()
    return OpenAICategorizer(client or _openai_client(settings), settings.openai_model)


def parse_tips(text: str) -> list[str]:
    lines = (_BULLET_PREFIX.sub("", line).strip() for line in text.splitlines())
    return dedupe_lines((line for line in lines if len(line) > 6), limit=MAX_TIPS)


def suggest_tips(summary: MonthlyReportSummary, settings: AppSettings, client: Any | None = None) -> list[str]:
    """Up to three short tips for the month; empty without a key or on failure."""

    if client is None and not settings.openai_api_key:
        return []
    client = client or _openai_client(settings)
    delta = "no baseline" if summary.delta_percent is None else format_percent(summary.delta_percent)
    prompt = "\n".join(
        [
            "You are a personal finance analyst.",
            "Write up to 3 short, actionable insights.",
            f"Month: {summary.month_label}",
            f"Current spending: {format_money(summary.expense)}",
            f"Previous month spending: {format_money(summary.previous_expense)}",
            f"Change: {delta}",
            f"Leading category: {summary.top_category or 'none'}",
            f"Month balance: {format_money(summary.balance)}",
        ]
    )
    try:
        response = client.responses.create(
            model=settings.openai_model,
            input=[
                {"role": "system", "content": "Answer with a plain bullet list, no extra markdown."},
                {"role": "user", "content": prompt},
            ],
        )
        return parse_tips(str(response.output_text or ""))
    except (OpenAIError, ValueError, TypeError) as exc:
        logger.warning("AI tips unavailable: %s", exc)
        return []


__all__ = ["MAX_TIPS", "OpenAICategorizer", "build_categorizer", "parse_tips", "suggest_tips"]
