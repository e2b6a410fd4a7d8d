from datetime import datetime

from pydantic import BaseModel

from sms_categorizer.models import (
    CategorizedTransaction,
    Category,
    PatternMatchResult,
    TeachingExample,
    Transaction,
)


class CategorizeRequest(BaseModel):
    transaction: Transaction


class CategorizeBatchRequest(BaseModel):
    transactions: list[Transaction]


class LearnRuleRequest(BaseModel):
    transactions: list[Transaction]
    category: Category
    name: str | None = None


class PriorityRequest(BaseModel):
    priority: int


class InferPatternRequest(BaseModel):
    examples: list[TeachingExample]


class TeachPatternRequest(BaseModel):
    bank_name: str
    examples: list[TeachingExample]
    sender_ids: list[str] | None = None
    default_category: Category | None = None


class ParseMessageRequest(BaseModel):
    message_id: int = 0
    sender_id: str
    body: str
    timestamp: datetime | None = None


class ParseMessageResponse(BaseModel):
    matched: bool
    pattern_id: str | None = None
    match: PatternMatchResult | None = None
    transaction: Transaction | None = None
    categorized: CategorizedTransaction | None = None


class CategoryInfo(BaseModel):
    name: Category
    display_name: str
    primary_category: str
    exclude_from_spending: bool = False
