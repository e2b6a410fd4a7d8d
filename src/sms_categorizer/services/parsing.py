from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timezone

from sms_categorizer.domain.amounts import parse_amount
from sms_categorizer.logger import get_logger
from sms_categorizer.models import (
    CategorizedTransaction,
    FieldType,
    LearnedBankPattern,
    MatchType,
    PatternMatchResult,
    Transaction,
    TransactionType,
)
from sms_categorizer.services.matching import FuzzyPatternMatcher

logger = get_logger(__name__)

# Checked in order against the lowercased TRANSACTION_TYPE field.
TRANSACTION_TYPE_KEYWORDS: tuple[tuple[str, TransactionType], ...] = (
    ("retiro", TransactionType.WITHDRAWAL),
    ("withdraw", TransactionType.WITHDRAWAL),
    ("transf", TransactionType.TRANSFER),
    ("recib", TransactionType.CREDIT),
    ("abono", TransactionType.CREDIT),
    ("consign", TransactionType.CREDIT),
    ("deposit", TransactionType.CREDIT),
    ("credit", TransactionType.CREDIT),
)


@dataclass(frozen=True)
class PatternParseOutcome:
    pattern: LearnedBankPattern | None = None
    updated_pattern: LearnedBankPattern | None = None
    match: PatternMatchResult | None = None
    transaction: Transaction | None = None
    categorized: CategorizedTransaction | None = None

    @property
    def matched(self) -> bool:
        return self.transaction is not None


def detect_transaction_type(text: str | None) -> TransactionType:
    if text:
        lowered = text.lower()
        for keyword, transaction_type in TRANSACTION_TYPE_KEYWORDS:
            if keyword in lowered:
                return transaction_type
    return TransactionType.DEBIT


class PatternParsingService:
    """Turns raw bank messages into transactions using patterns the user taught."""

    def __init__(self, matcher: FuzzyPatternMatcher | None = None):
        self.matcher = matcher or FuzzyPatternMatcher()

    def find_pattern(
        self, sender_id: str, patterns: Sequence[LearnedBankPattern]
    ) -> LearnedBankPattern | None:
        sender = sender_id.strip().lower()
        for pattern in patterns:
            if pattern.enabled and any(s.strip().lower() == sender for s in pattern.sender_ids):
                return pattern
        return None

    def parse_message(
        self,
        message_id: int,
        sender_id: str,
        body: str,
        timestamp: datetime,
        patterns: Sequence[LearnedBankPattern],
    ) -> PatternParseOutcome:
        pattern = self.find_pattern(sender_id, patterns)
        if pattern is None:
            return PatternParseOutcome()

        match = self.matcher.match(body, pattern.pattern, pattern.id)
        transaction = None
        if match is not None:
            transaction = self._build_transaction(message_id, body, timestamp, pattern, match)
            if transaction is None:
                logger.debug("Pattern %s matched but amount could not be parsed", pattern.id)

        now = datetime.now(timezone.utc)
        if transaction is not None:
            updated = pattern.model_copy(
                update={"success_count": pattern.success_count + 1, "updated_at": now}
            )
        else:
            updated = pattern.model_copy(
                update={"fail_count": pattern.fail_count + 1, "updated_at": now}
            )

        categorized = None
        if transaction is not None and pattern.default_category is not None:
            categorized = CategorizedTransaction(
                transaction=transaction,
                category=pattern.default_category,
                confidence=match.confidence,
                match_type=MatchType.USER_PATTERN,
            )

        return PatternParseOutcome(
            pattern=pattern,
            updated_pattern=updated,
            match=match,
            transaction=transaction,
            categorized=categorized,
        )

    def _build_transaction(
        self,
        message_id: int,
        body: str,
        timestamp: datetime,
        pattern: LearnedBankPattern,
        match: PatternMatchResult,
    ) -> Transaction | None:
        raw_amount = match.fields.get(FieldType.AMOUNT)
        amount = parse_amount(raw_amount, pattern.pattern.amount_format) if raw_amount else None
        if amount is None or amount <= 0:
            return None

        return Transaction(
            message_id=message_id,
            type=detect_transaction_type(match.fields.get(FieldType.TRANSACTION_TYPE)),
            amount=amount,
            merchant=match.fields.get(FieldType.MERCHANT),
            institution=pattern.bank_name,
            timestamp=timestamp,
            raw_message=body,
        )
