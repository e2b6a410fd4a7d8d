from collections.abc import Callable, Sequence

from sms_categorizer.models import (
    CategorizationResult,
    MatchType,
    Transaction,
    UserCategorizationRule,
)

from .base import Classifier
from .dictionary import normalized_merchant

USER_RULE_CONFIDENCE = 1.0

RuleMatcher = Callable[[Transaction, UserCategorizationRule], bool]


class UserRuleClassifier(Classifier):
    """
    Applies learned user rules in the order given.

    Callers sort by priority beforehand; the first matching rule wins.
    """

    def __init__(self, rules: Sequence[UserCategorizationRule], matcher: RuleMatcher):
        self.rules = tuple(rules)
        self.matcher = matcher

    def classify(self, transaction: Transaction) -> CategorizationResult | None:
        if not self.rules or not normalized_merchant(transaction):
            return None

        for rule in self.rules:
            if self.matcher(transaction, rule):
                return CategorizationResult(
                    category=rule.category,
                    confidence=USER_RULE_CONFIDENCE,
                    match_type=MatchType.USER_RULE,
                )
        return None
