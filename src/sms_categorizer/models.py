from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True)


class TransactionType(str, Enum):
    DEBIT = "DEBIT"
    CREDIT = "CREDIT"
    TRANSFER = "TRANSFER"
    WITHDRAWAL = "WITHDRAWAL"


class PrimaryCategory(str, Enum):
    FOOD_AND_DRINK = "FOOD_AND_DRINK"
    TRANSPORTATION = "TRANSPORTATION"
    RENT_AND_UTILITIES = "RENT_AND_UTILITIES"
    BANK_FEES = "BANK_FEES"
    MEDICAL = "MEDICAL"
    GENERAL_MERCHANDISE = "GENERAL_MERCHANDISE"
    INTERNAL_TRANSFERS = "INTERNAL_TRANSFERS"

    @property
    def display_name(self) -> str:
        return _PRIMARY_DISPLAY_NAMES[self]


_PRIMARY_DISPLAY_NAMES = {
    PrimaryCategory.FOOD_AND_DRINK: "Food & Drink",
    PrimaryCategory.TRANSPORTATION: "Transportation",
    PrimaryCategory.RENT_AND_UTILITIES: "Rent & Utilities",
    PrimaryCategory.BANK_FEES: "Bank Fees",
    PrimaryCategory.MEDICAL: "Medical",
    PrimaryCategory.GENERAL_MERCHANDISE: "General",
    PrimaryCategory.INTERNAL_TRANSFERS: "Transfers",
}


class Category(str, Enum):
    GROCERIES = "GROCERIES"
    RESTAURANT = "RESTAURANT"
    COFFEE = "COFFEE"
    GAS = "GAS"
    TAXI_RIDESHARE = "TAXI_RIDESHARE"
    TRANSMILENIO = "TRANSMILENIO"
    ADMINISTRACION = "ADMINISTRACION"
    UTILITIES = "UTILITIES"
    CUATRO_X_MIL = "CUATRO_X_MIL"
    EPS_HEALTH = "EPS_HEALTH"
    PHARMACY = "PHARMACY"
    CREDIT_CARD_PAYMENT = "CREDIT_CARD_PAYMENT"
    UNCATEGORIZED = "UNCATEGORIZED"

    @property
    def primary_category(self) -> PrimaryCategory:
        return _CATEGORY_DETAILS[self][0]

    @property
    def display_name(self) -> str:
        return _CATEGORY_DETAILS[self][1]

    @property
    def exclude_from_spending(self) -> bool:
        """Only read by spending aggregation; classification ignores it."""
        return _CATEGORY_DETAILS[self][2]


_CATEGORY_DETAILS: dict[Category, tuple[PrimaryCategory, str, bool]] = {
    Category.GROCERIES: (PrimaryCategory.FOOD_AND_DRINK, "Groceries", False),
    Category.RESTAURANT: (PrimaryCategory.FOOD_AND_DRINK, "Restaurant", False),
    Category.COFFEE: (PrimaryCategory.FOOD_AND_DRINK, "Coffee", False),
    Category.GAS: (PrimaryCategory.TRANSPORTATION, "Gas", False),
    Category.TAXI_RIDESHARE: (PrimaryCategory.TRANSPORTATION, "Taxi/Rideshare", False),
    Category.TRANSMILENIO: (PrimaryCategory.TRANSPORTATION, "TransMilenio", False),
    Category.ADMINISTRACION: (PrimaryCategory.RENT_AND_UTILITIES, "Administración", False),
    Category.UTILITIES: (PrimaryCategory.RENT_AND_UTILITIES, "Utilities", False),
    Category.CUATRO_X_MIL: (PrimaryCategory.BANK_FEES, "4x1000", False),
    Category.EPS_HEALTH: (PrimaryCategory.MEDICAL, "EPS/Health", False),
    Category.PHARMACY: (PrimaryCategory.MEDICAL, "Pharmacy", False),
    Category.CREDIT_CARD_PAYMENT: (PrimaryCategory.INTERNAL_TRANSFERS, "Credit Card Payment", True),
    Category.UNCATEGORIZED: (PrimaryCategory.GENERAL_MERCHANDISE, "Uncategorized", False),
}


class MatchType(str, Enum):
    EXACT = "EXACT"
    # Substring hits are reported as FUZZY as well.
    FUZZY = "FUZZY"
    KEYWORD = "KEYWORD"
    USER_PATTERN = "USER_PATTERN"
    USER_RULE = "USER_RULE"
    DEFAULT = "DEFAULT"


class Transaction(FrozenModel):
    message_id: int = 0
    type: TransactionType = TransactionType.DEBIT
    amount: float = Field(gt=0)
    currency: str = "COP"
    merchant: Optional[str] = None
    description: Optional[str] = None
    institution: str
    timestamp: datetime
    raw_message: str = ""


class CategorizationResult(FrozenModel):
    category: Category
    confidence: float  # 0.0 to 1.0
    match_type: MatchType


class CategorizedTransaction(FrozenModel):
    transaction: Transaction
    category: Category
    confidence: float
    match_type: MatchType
    user_corrected: bool = False


# Rule conditions. A rule matches when every condition matches.

class MerchantEquals(FrozenModel):
    kind: Literal["merchant_equals"] = "merchant_equals"
    name: str


class MerchantContains(FrozenModel):
    kind: Literal["merchant_contains"] = "merchant_contains"
    keyword: str


class SenderContains(FrozenModel):
    kind: Literal["sender_contains"] = "sender_contains"
    keyword: str


class AmountRange(FrozenModel):
    kind: Literal["amount_range"] = "amount_range"
    min: Optional[float] = None
    max: Optional[float] = None


class AnyKeyword(FrozenModel):
    kind: Literal["any_keyword"] = "any_keyword"
    keywords: tuple[str, ...]


RuleCondition = Annotated[
    Union[MerchantEquals, MerchantContains, SenderContains, AmountRange, AnyKeyword],
    Field(discriminator="kind"),
]


class UserCategorizationRule(FrozenModel):
    id: str
    name: str
    conditions: tuple[RuleCondition, ...]
    category: Category
    priority: int = 100
    learned_from_examples: Optional[tuple[str, ...]] = None
    enabled: bool = True
    created_at: datetime


class FieldType(str, Enum):
    AMOUNT = "AMOUNT"
    MERCHANT = "MERCHANT"
    BALANCE = "BALANCE"
    CARD_LAST_4 = "CARD_LAST_4"
    DATE = "DATE"
    TRANSACTION_TYPE = "TRANSACTION_TYPE"


class FieldSelection(FrozenModel):
    field_type: FieldType
    start: int = Field(ge=0)
    end: int = Field(ge=0)  # exclusive
    text: str


class TeachingExample(FrozenModel):
    id: str
    body: str
    sender_id: str
    selections: tuple[FieldSelection, ...]
    category: Optional[Category] = None
    created_at: datetime


class CurrencyPosition(str, Enum):
    BEFORE = "BEFORE"
    AFTER = "AFTER"
    NONE = "NONE"


class AmountFormat(FrozenModel):
    thousands_separator: str = "."
    decimal_separator: str = ","
    currency_symbol: Optional[str] = "$"
    currency_position: CurrencyPosition = CurrencyPosition.BEFORE


class FixedText(FrozenModel):
    kind: Literal["fixed_text"] = "fixed_text"
    text: str
    fuzzy_allowed: bool = True


class Variable(FrozenModel):
    kind: Literal["variable"] = "variable"
    field_type: FieldType


PatternSegment = Annotated[Union[FixedText, Variable], Field(discriminator="kind")]


class InferredPattern(FrozenModel):
    segments: tuple[PatternSegment, ...]
    amount_format: AmountFormat
    confidence: float


class LearnedBankPattern(FrozenModel):
    id: str
    bank_name: str
    sender_ids: tuple[str, ...]
    examples: tuple[TeachingExample, ...] = ()
    pattern: InferredPattern
    default_category: Optional[Category] = None
    enabled: bool = True
    success_count: int = 0
    fail_count: int = 0
    created_at: datetime
    updated_at: datetime


class PatternMatchResult(FrozenModel):
    fields: dict[FieldType, str]
    confidence: float
    pattern_id: str
