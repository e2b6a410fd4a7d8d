from sms_categorizer.domain.merchants import DEFAULT_DICTIONARY, MerchantDictionary
from sms_categorizer.domain.similarity import contains_ignore_case
from sms_categorizer.models import CategorizationResult, MatchType, Transaction

from .base import Classifier
from .dictionary import normalized_merchant

KEYWORD_MATCH_CONFIDENCE = 0.7


class KeywordMatcher(Classifier):
    """Category keywords searched in the merchant name and the description."""

    def __init__(self, dictionary: MerchantDictionary = DEFAULT_DICTIONARY):
        self.dictionary = dictionary

    def classify(self, transaction: Transaction) -> CategorizationResult | None:
        description = (transaction.description or "").upper()
        combined = f"{normalized_merchant(transaction)} {description}"

        # Dictionary order decides between competing keywords.
        for keyword, category in self.dictionary.keyword_to_category.items():
            if contains_ignore_case(combined, keyword):
                return CategorizationResult(
                    category=category,
                    confidence=KEYWORD_MATCH_CONFIDENCE,
                    match_type=MatchType.KEYWORD,
                )
        return None
