"""Keyword categorizer."""

from __future__ import annotations

from finance_cloud.categorizer import DEFAULT_CATEGORY, KeywordCategorizer, normalize_text, pick_category


def test_normalize_text_strips_accents_and_case():
    assert normalize_text("  Farmácia SÃO João ") == "farmacia sao joao"
    assert normalize_text(None) == ""


def test_pick_category_matches_keywords():
    assert pick_category("iFood *Pedido 123") == "Alimentacao"
    assert pick_category("Farmácia São João") == "Saude"
    assert pick_category("NETFLIX.COM") == "Assinaturas"


def test_pick_category_keeps_existing_label():
    assert pick_category("Uber trip", "Travel") == "Travel"
    assert pick_category("Uber trip", "  ") == "Transporte"


def test_unknown_description_gets_default():
    assert pick_category("Zzz") == DEFAULT_CATEGORY
    assert pick_category(None) == DEFAULT_CATEGORY


def test_keyword_categorizer_labels_in_order():
    labels = KeywordCategorizer().categorize(["Posto Shell", "Aluguel março", "Misc"])

    assert labels == ["Transporte", "Moradia", DEFAULT_CATEGORY]
