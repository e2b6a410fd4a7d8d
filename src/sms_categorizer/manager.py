from collections.abc import Sequence

from sms_categorizer.classifiers.base import Classifier
from sms_categorizer.classifiers.dictionary import ExactMatcher, FuzzyMatcher, SubstringMatcher
from sms_categorizer.classifiers.keyword import KeywordMatcher
from sms_categorizer.classifiers.rules import RuleMatcher, UserRuleClassifier
from sms_categorizer.domain.merchants import DEFAULT_DICTIONARY, MerchantDictionary
from sms_categorizer.domain.similarity import clamp_confidence
from sms_categorizer.logger import get_logger
from sms_categorizer.models import (
    CategorizedTransaction,
    Category,
    MatchType,
    Transaction,
    UserCategorizationRule,
)

logger = get_logger(__name__)

DEFAULT_CONFIDENCE = 0.0


class CategorizationEngine:
    def __init__(self,
                 dictionary: MerchantDictionary = DEFAULT_DICTIONARY,
                 user_rules: Sequence[UserCategorizationRule] = (),
                 rule_matcher: RuleMatcher | None = None):

        self.classifiers: list[Classifier] = []

        # 1. User rules (only when both rules and a matcher were supplied)
        if user_rules and rule_matcher is not None:
            self.classifiers.append(UserRuleClassifier(user_rules, rule_matcher))

        # 2-5. Built-in dictionary layers
        self.classifiers.append(ExactMatcher(dictionary))
        self.classifiers.append(SubstringMatcher(dictionary))
        self.classifiers.append(FuzzyMatcher(dictionary))
        self.classifiers.append(KeywordMatcher(dictionary))

    def categorize(self, transaction: Transaction) -> CategorizedTransaction:
        for classifier in self.classifiers:
            classifier_name = classifier.__class__.__name__
            result = classifier.classify(transaction)

            if result:
                logger.debug(
                    "%s matched message %s: '%s' (confidence: %.2f)",
                    classifier_name,
                    transaction.message_id,
                    result.category.value,
                    result.confidence,
                )
                return CategorizedTransaction(
                    transaction=transaction,
                    category=result.category,
                    confidence=clamp_confidence(result.confidence),
                    match_type=result.match_type,
                )
            logger.debug("%s returned: None", classifier_name)

        logger.debug("No layer matched message %s", transaction.message_id)
        return CategorizedTransaction(
            transaction=transaction,
            category=Category.UNCATEGORIZED,
            confidence=DEFAULT_CONFIDENCE,
            match_type=MatchType.DEFAULT,
        )

    def categorize_all(self, transactions: Sequence[Transaction]) -> list[CategorizedTransaction]:
        return [self.categorize(transaction) for transaction in transactions]
