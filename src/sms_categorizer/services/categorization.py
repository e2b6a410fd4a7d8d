import asyncio
import uuid
from collections.abc import Sequence
from datetime import datetime, timezone

from sms_categorizer.domain.merchants import DEFAULT_DICTIONARY, MerchantDictionary
from sms_categorizer.logger import get_logger
from sms_categorizer.manager import CategorizationEngine
from sms_categorizer.models import (
    CategorizedTransaction,
    Category,
    InferredPattern,
    LearnedBankPattern,
    TeachingExample,
    Transaction,
    UserCategorizationRule,
)
from sms_categorizer.services.inference import PatternInferenceEngine
from sms_categorizer.services.matching import FuzzyPatternMatcher
from sms_categorizer.services.parsing import PatternParseOutcome, PatternParsingService
from sms_categorizer.services.storage import PatternStore, RuleStore
from sms_categorizer.services.teaching import CategoryTeachingEngine

logger = get_logger(__name__)


class CategorizationPipeline:
    """
    Connects the pure engines to the rule and pattern stores.

    Engine calls run in a worker thread so the event loop stays free.
    """

    def __init__(
        self,
        rule_store: RuleStore,
        pattern_store: PatternStore,
        dictionary: MerchantDictionary = DEFAULT_DICTIONARY,
        matcher: FuzzyPatternMatcher | None = None,
    ) -> None:
        self.rule_store = rule_store
        self.pattern_store = pattern_store
        self.dictionary = dictionary
        self.teaching = CategoryTeachingEngine()
        self.inference = PatternInferenceEngine()
        self.parser = PatternParsingService(matcher or FuzzyPatternMatcher())

    def build_engine(self) -> CategorizationEngine:
        return CategorizationEngine(
            dictionary=self.dictionary,
            user_rules=self.rule_store.get_enabled_rules(),
            rule_matcher=self.teaching.matches,
        )

    async def categorize(self, transaction: Transaction) -> CategorizedTransaction:
        engine = self.build_engine()
        return await asyncio.to_thread(engine.categorize, transaction)

    async def categorize_all(self, transactions: Sequence[Transaction]) -> list[CategorizedTransaction]:
        engine = self.build_engine()
        return await asyncio.to_thread(engine.categorize_all, transactions)

    async def learn_rule(
        self,
        transactions: Sequence[Transaction],
        category: Category,
        name: str | None = None,
    ) -> UserCategorizationRule | None:
        rule = await asyncio.to_thread(self.teaching.learn_rule, transactions, category, name)
        if rule is None:
            logger.info("[RULES] No common pattern in %d transactions for '%s'.", len(transactions), category.value)
            return None
        self.rule_store.save_rule(rule)
        logger.info("[RULES] Saved rule %s: %s", rule.id, rule.name)
        return rule

    async def infer_pattern(self, examples: Sequence[TeachingExample]) -> InferredPattern | None:
        return await asyncio.to_thread(self.inference.infer_pattern, examples)

    async def teach_pattern(
        self,
        bank_name: str,
        examples: Sequence[TeachingExample],
        sender_ids: Sequence[str] | None = None,
        default_category: Category | None = None,
    ) -> LearnedBankPattern | None:
        inferred = await self.infer_pattern(examples)
        if inferred is None:
            logger.info("[PATTERNS] Could not infer a pattern for '%s'.", bank_name)
            return None

        now = datetime.now(timezone.utc)
        senders = tuple(sender_ids) if sender_ids else tuple(dict.fromkeys(e.sender_id for e in examples))
        pattern = LearnedBankPattern(
            id=f"pattern_{uuid.uuid4().hex}",
            bank_name=bank_name,
            sender_ids=senders,
            examples=tuple(examples),
            pattern=inferred,
            default_category=default_category,
            created_at=now,
            updated_at=now,
        )
        self.pattern_store.save_pattern(pattern)
        logger.info(
            "[PATTERNS] Saved pattern %s for %s (confidence: %.2f)",
            pattern.id,
            bank_name,
            inferred.confidence,
        )
        return pattern

    async def parse_message(
        self,
        message_id: int,
        sender_id: str,
        body: str,
        timestamp: datetime | None = None,
    ) -> tuple[PatternParseOutcome, CategorizedTransaction | None]:
        outcome = await asyncio.to_thread(
            self.parser.parse_message,
            message_id,
            sender_id,
            body,
            timestamp or datetime.now(timezone.utc),
            self.pattern_store.get_all_patterns(),
        )
        if outcome.pattern is None:
            logger.debug("[PATTERNS] No learned pattern for sender '%s'.", sender_id)
            return outcome, None

        # Increment the stored counters, not the snapshot.
        self.pattern_store.record_match(outcome.pattern.id, outcome.matched)
        logger.info(
            "[PATTERNS] Message %s %s pattern %s",
            message_id,
            "matched" if outcome.matched else "did not match",
            outcome.pattern.id,
        )

        if not outcome.matched:
            return outcome, None
        if outcome.categorized is not None:
            return outcome, outcome.categorized
        return outcome, await self.categorize(outcome.transaction)
