from sms_categorizer.domain.merchants import DEFAULT_DICTIONARY, MerchantDictionary
from sms_categorizer.domain.similarity import (
    clamp_confidence,
    normalize_merchant_name,
    similarity,
)
from sms_categorizer.models import CategorizationResult, MatchType, Transaction

from .base import Classifier

EXACT_MATCH_CONFIDENCE = 0.95
SUBSTRING_MATCH_CONFIDENCE = 0.9
FUZZY_MATCH_THRESHOLD = 0.85
FUZZY_CONFIDENCE_FACTOR = 0.9


def normalized_merchant(transaction: Transaction) -> str:
    if not transaction.merchant:
        return ""
    return normalize_merchant_name(transaction.merchant)


class ExactMatcher(Classifier):
    def __init__(self, dictionary: MerchantDictionary = DEFAULT_DICTIONARY):
        self.dictionary = dictionary

    def classify(self, transaction: Transaction) -> CategorizationResult | None:
        merchant = normalized_merchant(transaction)
        if not merchant:
            return None

        category = self.dictionary.merchant_to_category.get(merchant)
        if category is None:
            return None
        return CategorizationResult(
            category=category,
            confidence=EXACT_MATCH_CONFIDENCE,
            match_type=MatchType.EXACT,
        )


class SubstringMatcher(Classifier):
    """
    Known merchant contained in the merchant name, or the other way round.

    The longest known merchant wins, so "ALMACENES EXITO" beats "EXITO" for
    "ALMACENES EXITO BOGOTA".
    """

    def __init__(self, dictionary: MerchantDictionary = DEFAULT_DICTIONARY):
        self.dictionary = dictionary

    def classify(self, transaction: Transaction) -> CategorizationResult | None:
        merchant = normalized_merchant(transaction)
        if not merchant:
            return None

        merchant_lower = merchant.lower()
        best_name: str | None = None
        for known in self.dictionary.merchant_names:
            known_lower = known.lower()
            if known_lower in merchant_lower or merchant_lower in known_lower:
                if best_name is None or len(known) > len(best_name):
                    best_name = known

        if best_name is None:
            return None
        return CategorizationResult(
            category=self.dictionary.merchant_to_category[best_name],
            confidence=SUBSTRING_MATCH_CONFIDENCE,
            match_type=MatchType.FUZZY,
        )


class FuzzyMatcher(Classifier):
    def __init__(
        self,
        dictionary: MerchantDictionary = DEFAULT_DICTIONARY,
        threshold: float = FUZZY_MATCH_THRESHOLD,
    ):
        self.dictionary = dictionary
        self.threshold = threshold

    def classify(self, transaction: Transaction) -> CategorizationResult | None:
        merchant = normalized_merchant(transaction)
        if not merchant:
            return None

        best_name: str | None = None
        best_score = 0.0
        for known in self.dictionary.merchant_names:
            score = similarity(merchant, known)
            if score >= self.threshold and score > best_score:
                best_name = known
                best_score = score

        if best_name is None:
            return None
        return CategorizationResult(
            category=self.dictionary.merchant_to_category[best_name],
            confidence=clamp_confidence(best_score * FUZZY_CONFIDENCE_FACTOR),
            match_type=MatchType.FUZZY,
        )
