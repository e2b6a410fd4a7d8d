import uuid
from collections.abc import Sequence
from datetime import datetime, timezone

from sms_categorizer.domain.similarity import normalize_merchant_name
from sms_categorizer.logger import get_logger
from sms_categorizer.models import (
    AmountRange,
    AnyKeyword,
    Category,
    MerchantContains,
    MerchantEquals,
    RuleCondition,
    SenderContains,
    Transaction,
    UserCategorizationRule,
)

logger = get_logger(__name__)

DEFAULT_RULE_PRIORITY = 100
MIN_EXAMPLES = 2
MIN_TOKEN_LENGTH = 3

# Articles, conjunctions and legal-entity abbreviations (Spanish and English).
GENERIC_WORDS = frozenset({
    "DE", "LA", "EL", "LOS", "LAS", "DEL", "AL",
    "SAS", "S.A.S", "SA", "S.A", "LTDA", "LIMITADA",
    "INC", "LLC", "CO", "CORPORATION", "CORP",
    "Y", "E", "O", "EN", "CON", "POR", "PARA",
    "THE", "AND", "OR", "OF", "TO", "IN", "FOR",
})


def derive_sender_id(raw_message: str) -> str | None:
    """
    First word of the raw message, uppercased, when it has at least 3 characters.

    Bank messages usually open with the bank name.
    """
    words = raw_message.split()
    if not words or len(words[0]) < MIN_TOKEN_LENGTH:
        return None
    return words[0].upper()


def _merchant_of(transaction: Transaction) -> str | None:
    if not transaction.merchant or not transaction.merchant.strip():
        return None
    return normalize_merchant_name(transaction.merchant)


def _common_keywords(merchants: Sequence[str]) -> list[str]:
    token_sets = [set(merchant.split()) for merchant in merchants]
    common = set.intersection(*token_sets)
    # Keep the order of the first merchant so rule names are stable.
    return [
        token for token in dict.fromkeys(merchants[0].split())
        if token in common
        and len(token) >= MIN_TOKEN_LENGTH
        and token not in GENERIC_WORDS
    ]


def _describe(condition: RuleCondition) -> str:
    if isinstance(condition, MerchantEquals):
        return f'"{condition.name}"'
    if isinstance(condition, AnyKeyword):
        return ", ".join(condition.keywords)
    if isinstance(condition, MerchantContains):
        return f'"{condition.keyword}"'
    if isinstance(condition, SenderContains):
        return f"from {condition.keyword}"
    if isinstance(condition, AmountRange):
        return f"amounts {condition.min}-{condition.max}"
    raise TypeError(f"Unsupported rule condition: {condition!r}")


def generate_rule_name(conditions: Sequence[RuleCondition], category: Category) -> str:
    description = _describe(conditions[0]) if conditions else "transactions"
    return f"Categorize {description} as {category.value.lower()}"


class CategoryTeachingEngine:
    """
    Learns categorization rules from transactions the user grouped together,
    and evaluates learned rules against new transactions.
    """

    def learn_rule(
        self,
        transactions: Sequence[Transaction],
        category: Category,
        name: str | None = None,
    ) -> UserCategorizationRule | None:
        if len(transactions) < MIN_EXAMPLES:
            return None

        conditions: list[RuleCondition] = []

        merchants = [m for m in (_merchant_of(t) for t in transactions) if m]
        # Merchant conditions need at least two named merchants.
        if len(merchants) >= MIN_EXAMPLES:
            if len(set(merchants)) == 1:
                conditions.append(MerchantEquals(name=merchants[0]))
            else:
                keywords = _common_keywords(merchants)
                if keywords:
                    conditions.append(AnyKeyword(keywords=tuple(keywords)))

        senders = [s for s in (derive_sender_id(t.raw_message) for t in transactions) if s]
        if senders and len(set(senders)) == 1:
            conditions.append(SenderContains(keyword=senders[0]))

        if not conditions:
            logger.debug("No common pattern across %d transactions", len(transactions))
            return None

        rule = UserCategorizationRule(
            id=f"rule_{uuid.uuid4().hex}",
            name=name or generate_rule_name(conditions, category),
            conditions=tuple(conditions),
            category=category,
            priority=DEFAULT_RULE_PRIORITY,
            learned_from_examples=tuple(str(t.message_id) for t in transactions),
            enabled=True,
            created_at=datetime.now(timezone.utc),
        )
        logger.debug("Learned rule '%s' with %d condition(s)", rule.name, len(rule.conditions))
        return rule

    def matches(self, transaction: Transaction, rule: UserCategorizationRule) -> bool:
        if not rule.enabled:
            return False
        return all(self._matches_condition(transaction, c) for c in rule.conditions)

    def _matches_condition(self, transaction: Transaction, condition: RuleCondition) -> bool:
        if isinstance(condition, (MerchantEquals, MerchantContains, AnyKeyword)):
            merchant = _merchant_of(transaction)
            if merchant is None:
                return False
            if isinstance(condition, MerchantEquals):
                return merchant == normalize_merchant_name(condition.name)
            if isinstance(condition, MerchantContains):
                return condition.keyword.upper() in merchant
            return any(keyword.upper() in merchant for keyword in condition.keywords)

        if isinstance(condition, SenderContains):
            sender = derive_sender_id(transaction.raw_message)
            return sender is not None and condition.keyword.upper() in sender

        if isinstance(condition, AmountRange):
            if condition.min is not None and transaction.amount < condition.min:
                return False
            if condition.max is not None and transaction.amount > condition.max:
                return False
            return True

        raise TypeError(f"Unsupported rule condition: {condition!r}")
