from datetime import datetime
from unittest.mock import patch

import pytest

from sms_categorizer.manager import CategorizationEngine
from sms_categorizer.models import (
    AmountRange,
    AnyKeyword,
    CategorizationResult,
    Category,
    MatchType,
    MerchantEquals,
    Transaction,
    UserCategorizationRule,
)
from sms_categorizer.services.teaching import CategoryTeachingEngine


def make_transaction(
    merchant: str | None,
    description: str | None = None,
    amount: float = 50000.0,
) -> Transaction:
    return Transaction(
        message_id=1,
        amount=amount,
        merchant=merchant,
        description=description,
        institution="Bancolombia",
        timestamp=datetime(2024, 5, 1, 12, 0),
        raw_message="Bancolombia: Compra",
    )


def make_rule(rule_id: str, category: Category, *conditions, priority: int = 100, enabled: bool = True):
    return UserCategorizationRule(
        id=rule_id,
        name=rule_id,
        conditions=conditions,
        category=category,
        priority=priority,
        enabled=enabled,
        created_at=datetime(2024, 5, 1),
    )


@pytest.fixture
def engine() -> CategorizationEngine:
    return CategorizationEngine()


def test_exact_match_exito(engine):
    res = engine.categorize(make_transaction("EXITO"))
    assert res.category == Category.GROCERIES
    assert res.confidence == 0.95
    assert res.match_type == MatchType.EXACT
    assert res.user_corrected is False


def test_substring_match_mas_por_menos(engine):
    res = engine.categorize(make_transaction("SUPERM MAS POR MENOS C"))
    assert res.category == Category.GROCERIES
    assert res.match_type == MatchType.FUZZY
    assert res.confidence >= 0.9


def test_substring_prefers_longer_match(engine):
    res = engine.categorize(make_transaction("ALMACENES EXITO BOGOTA"))
    assert res.category == Category.GROCERIES
    assert res.match_type == MatchType.FUZZY
    assert res.confidence == 0.9


def test_substring_finds_juan_valdez(engine):
    res = engine.categorize(make_transaction("JUAN VALDEZ CAFE UNICENTRO"))
    assert res.category == Category.COFFEE


def test_exact_match_ignores_description(engine):
    res = engine.categorize(make_transaction("RAPPI", description="SUPERMERCADO FARMACIA"))
    assert res.category == Category.RESTAURANT
    assert res.match_type == MatchType.EXACT
    assert res.confidence == 0.95


def test_keyword_match_supermercado(engine):
    res = engine.categorize(make_transaction("SUPERMERCADO LA ESQUINA"))
    assert res.category == Category.GROCERIES
    assert res.match_type == MatchType.KEYWORD
    assert res.confidence == 0.7


def test_keyword_match_uses_description(engine):
    res = engine.categorize(make_transaction("XYZ123", description="Pago en restaurante"))
    assert res.category == Category.RESTAURANT
    assert res.match_type == MatchType.KEYWORD


def test_default_for_unknown_merchant(engine):
    res = engine.categorize(make_transaction("QWERTY ZXCV"))
    assert res.category == Category.UNCATEGORIZED
    assert res.confidence == 0.0
    assert res.match_type == MatchType.DEFAULT


def test_default_for_missing_merchant(engine):
    res = engine.categorize(make_transaction(None))
    assert res.category == Category.UNCATEGORIZED
    assert res.match_type == MatchType.DEFAULT


def test_categorize_is_deterministic(engine):
    transaction = make_transaction("SUPERM MAS POR MENOS C", description="compra")
    assert engine.categorize(transaction) == engine.categorize(transaction)


def test_categorize_all_preserves_order(engine):
    results = engine.categorize_all([
        make_transaction("EXITO"),
        make_transaction("UBER"),
        make_transaction("QWERTY ZXCV"),
    ])
    assert [r.category for r in results] == [
        Category.GROCERIES,
        Category.TAXI_RIDESHARE,
        Category.UNCATEGORIZED,
    ]


def test_confidence_always_in_unit_interval(engine):
    merchants = ["EXITO", "EXIT0", "MAS POR", "TIENDA", "", None, "ZZZZ", "STARBUCKZ"]
    for merchant in merchants:
        res = engine.categorize(make_transaction(merchant))
        assert 0.0 <= res.confidence <= 1.0


def test_user_rule_takes_priority():
    teaching = CategoryTeachingEngine()
    rule = make_rule("rule_1", Category.PHARMACY, MerchantEquals(name="EXITO"))
    engine = CategorizationEngine(user_rules=[rule], rule_matcher=teaching.matches)

    res = engine.categorize(make_transaction("EXITO"))
    assert res.category == Category.PHARMACY
    assert res.match_type == MatchType.USER_RULE
    assert res.confidence == 1.0


def test_user_rules_evaluated_in_given_order():
    teaching = CategoryTeachingEngine()
    low = make_rule("low", Category.COFFEE, AnyKeyword(keywords=("EXITO",)), priority=1)
    high = make_rule("high", Category.PHARMACY, MerchantEquals(name="EXITO"), priority=200)
    engine = CategorizationEngine(user_rules=[low, high], rule_matcher=teaching.matches)

    # The engine does not sort; the first rule in the list wins.
    assert engine.categorize(make_transaction("EXITO")).category == Category.COFFEE


def test_user_rules_fall_back_to_builtin_layers():
    teaching = CategoryTeachingEngine()
    rule = make_rule("rule_1", Category.GROCERIES, MerchantEquals(name="CARULLA"))
    engine = CategorizationEngine(user_rules=[rule], rule_matcher=teaching.matches)

    res = engine.categorize(make_transaction("UBER"))
    assert res.category == Category.TAXI_RIDESHARE
    assert res.match_type == MatchType.EXACT


def test_disabled_rule_is_ignored():
    teaching = CategoryTeachingEngine()
    rule = make_rule("off", Category.PHARMACY, MerchantEquals(name="EXITO"), enabled=False)
    engine = CategorizationEngine(user_rules=[rule], rule_matcher=teaching.matches)

    assert engine.categorize(make_transaction("EXITO")).match_type == MatchType.EXACT


def test_all_rule_conditions_must_match():
    teaching = CategoryTeachingEngine()
    rule = make_rule(
        "big_exito",
        Category.ADMINISTRACION,
        MerchantEquals(name="EXITO"),
        AmountRange(min=1_000_000),
    )
    engine = CategorizationEngine(user_rules=[rule], rule_matcher=teaching.matches)

    assert engine.categorize(make_transaction("EXITO", amount=50000)).category == Category.GROCERIES
    assert engine.categorize(make_transaction("EXITO", amount=2_000_000)).category == Category.ADMINISTRACION


def test_rules_without_matcher_are_skipped():
    rule = make_rule("rule_1", Category.PHARMACY, MerchantEquals(name="EXITO"))
    engine = CategorizationEngine(user_rules=[rule])
    assert engine.categorize(make_transaction("EXITO")).match_type == MatchType.EXACT


def test_layer_order_short_circuits():
    with patch("sms_categorizer.manager.ExactMatcher") as mock_exact, \
         patch("sms_categorizer.manager.SubstringMatcher") as mock_substring, \
         patch("sms_categorizer.manager.FuzzyMatcher") as mock_fuzzy, \
         patch("sms_categorizer.manager.KeywordMatcher") as mock_keyword:

        exact = mock_exact.return_value
        substring = mock_substring.return_value
        fuzzy = mock_fuzzy.return_value
        keyword = mock_keyword.return_value

        engine = CategorizationEngine()
        t = make_transaction("ANY")

        # Case 1: exact layer wins
        exact.classify.return_value = CategorizationResult(
            category=Category.GAS, confidence=0.95, match_type=MatchType.EXACT
        )
        assert engine.categorize(t).category == Category.GAS
        substring.classify.assert_not_called()

        # Case 2: only the keyword layer answers
        exact.classify.return_value = None
        substring.classify.return_value = None
        fuzzy.classify.return_value = None
        keyword.classify.return_value = CategorizationResult(
            category=Category.COFFEE, confidence=0.7, match_type=MatchType.KEYWORD
        )
        res = engine.categorize(t)
        assert res.category == Category.COFFEE
        assert res.match_type == MatchType.KEYWORD

        # Case 3: nothing answers
        keyword.classify.return_value = None
        assert engine.categorize(t).match_type == MatchType.DEFAULT
