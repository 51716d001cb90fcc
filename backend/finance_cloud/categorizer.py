"""Local keyword categorizer for transaction descriptions."""
from __future__ import annotations

import unicodedata
from typing import Protocol, Sequence

DEFAULT_CATEGORY = "Outros"

CATEGORY_RULES: tuple[tuple[str, tuple[str, ...]], ...] = (
    (
        "Alimentacao",
        ("ifood", "restaurante", "lanche", "pizza", "hamburg", "padaria", "mercado", "supermercado", "delivery"),
    ),
    (
        "Transporte",
        ("uber", "99", "combustivel", "gasolina", "posto", "onibus", "metro", "estacionamento", "pedagio"),
    ),
    ("Moradia", ("aluguel", "condominio", "energia", "luz", "agua", "gas", "internet", "telefone")),
    ("Saude", ("farmacia", "medico", "hospital", "plano de saude", "clinica", "exame")),
    ("Assinaturas", ("netflix", "spotify", "prime", "disney", "hbo", "youtube", "assinatura", "icloud")),
    ("Lazer", ("cinema", "show", "bar", "viagem", "hotel", "jogo", "stream")),
    ("Educacao", ("curso", "faculdade", "livro", "udemy", "alura", "escola")),
    ("Investimentos", ("corretora", "tesouro", "cdb", "fii", "acao", "crypto", "bitcoin", "eth")),
)


def normalize_text(value: str | None) -> str:
    """Strip accents, lower-case and trim ``value``."""

    decomposed = unicodedata.normalize("NFD", value or "")
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.lower().strip()


def pick_category(description: str | None, current: str | None = None) -> str:
    existing = (current or "").strip()
    if existing:
        return existing
    normalized = normalize_text(description)
    for category, terms in CATEGORY_RULES:
        if any(term in normalized for term in terms):
            return category
    return DEFAULT_CATEGORY


class Categorizer(Protocol):
    """Maps free-text descriptions to category labels, one label per input."""

    def categorize(self, descriptions: Sequence[str]) -> list[str]:
        ...


class KeywordCategorizer:
    """Deterministic substring match against :data:`CATEGORY_RULES`."""

    def categorize(self, descriptions: Sequence[str]) -> list[str]:
        return [pick_category(description) for description in descriptions]


__all__ = [
    "CATEGORY_RULES",
    "DEFAULT_CATEGORY",
    "Categorizer",
    "KeywordCategorizer",
    "normalize_text",
    "pick_category",
]
