from collections.abc import Sequence

from sms_categorizer.domain.similarity import clamp_confidence, longest_common_substring
from sms_categorizer.logger import get_logger
from sms_categorizer.models import (
    AmountFormat,
    CurrencyPosition,
    FieldSelection,
    FieldType,
    FixedText,
    InferredPattern,
    PatternSegment,
    TeachingExample,
    Variable,
)

logger = get_logger(__name__)

MIN_EXAMPLES = 2
NO_ANCHOR_CONFIDENCE = 0.4

# Checked in order; the first symbol found wins.
CURRENCY_SYMBOLS = ("$", "USD", "COP", "€", "£", "R$")

# Colombian peso convention, used when no amount was selected.
DEFAULT_AMOUNT_FORMAT = AmountFormat(
    thousands_separator=".",
    decimal_separator=",",
    currency_symbol="$",
    currency_position=CurrencyPosition.BEFORE,
)

_COMPLEMENT = {".": ",", ",": "."}


def find_common_text(texts: Sequence[str]) -> str:
    """Longest substring shared by every text, stripped of surrounding whitespace."""
    if not texts:
        return ""
    common = texts[0]
    for text in texts[1:]:
        common = longest_common_substring(common, text)
        if not common:
            break
    return common.strip()


def detect_amount_format(amount_text: str | None) -> AmountFormat:
    if amount_text is None:
        return DEFAULT_AMOUNT_FORMAT

    has_comma = "," in amount_text
    has_dot = "." in amount_text
    if has_comma and has_dot:
        # The separator that appears last is the decimal one.
        decimal = "," if amount_text.rfind(",") > amount_text.rfind(".") else "."
        thousands = _COMPLEMENT[decimal]
    elif has_comma or has_dot:
        thousands = "," if has_comma else "."
        decimal = _COMPLEMENT[thousands]
    else:
        thousands = DEFAULT_AMOUNT_FORMAT.thousands_separator
        decimal = DEFAULT_AMOUNT_FORMAT.decimal_separator

    symbol: str | None = None
    position = CurrencyPosition.NONE
    for candidate in CURRENCY_SYMBOLS:
        if amount_text.startswith(candidate):
            symbol, position = candidate, CurrencyPosition.BEFORE
            break
        if amount_text.endswith(candidate):
            symbol, position = candidate, CurrencyPosition.AFTER
            break
        if candidate in amount_text:
            symbol, position = candidate, CurrencyPosition.BEFORE
            break

    return AmountFormat(
        thousands_separator=thousands,
        decimal_separator=decimal,
        currency_symbol=symbol,
        currency_position=position,
    )


def _valid_selections(body: str, selections: Sequence[FieldSelection]) -> bool:
    previous_end = 0
    for selection in selections:
        if not 0 <= selection.start < selection.end <= len(body):
            return False
        if selection.start < previous_end:
            return False
        previous_end = selection.end
    return True


class PatternInferenceEngine:
    """
    Infers a message template from 2+ examples of the same bank message format.

    Text shared by every example between the highlighted fields becomes a fixed
    anchor; each highlighted field becomes a variable slot.
    """

    def infer_pattern(self, examples: Sequence[TeachingExample]) -> InferredPattern | None:
        if len(examples) < MIN_EXAMPLES:
            logger.debug("Pattern inference needs %d examples, got %d", MIN_EXAMPLES, len(examples))
            return None

        field_types = {s.field_type for s in examples[0].selections}
        if not field_types:
            return None
        if any({s.field_type for s in example.selections} != field_types for example in examples):
            logger.debug("Examples highlight different fields; cannot infer a pattern")
            return None

        bodies = [example.body for example in examples]
        ordered = [sorted(example.selections, key=lambda s: s.start) for example in examples]
        if any(len(selections) != len(ordered[0]) for selections in ordered):
            return None
        if not all(_valid_selections(body, sel) for body, sel in zip(bodies, ordered)):
            logger.debug("Examples contain out-of-range or overlapping selections")
            return None
        # Same multiset but different order would pair up unrelated fields.
        if any([s.field_type for s in sel] != [s.field_type for s in ordered[0]] for sel in ordered):
            return None

        segments = self._build_segments(bodies, ordered)
        amount_format = self._amount_format(ordered[0])
        confidence = self._confidence(bodies, segments)

        return InferredPattern(
            segments=tuple(segments),
            amount_format=amount_format,
            confidence=confidence,
        )

    def _build_segments(
        self,
        bodies: list[str],
        ordered: list[list[FieldSelection]],
    ) -> list[PatternSegment]:
        segments: list[PatternSegment] = []

        prefix = find_common_text([body[:sel[0].start] for body, sel in zip(bodies, ordered)])
        if prefix:
            segments.append(FixedText(text=prefix, fuzzy_allowed=True))

        for index, selection in enumerate(ordered[0]):
            segments.append(Variable(field_type=selection.field_type))

            gaps = []
            for body, sel in zip(bodies, ordered):
                gap_end = sel[index + 1].start if index + 1 < len(sel) else len(body)
                gaps.append(body[sel[index].end:gap_end])

            between = find_common_text(gaps)
            if between:
                segments.append(FixedText(text=between, fuzzy_allowed=True))

        return segments

    def _amount_format(self, selections: list[FieldSelection]) -> AmountFormat:
        amount = next((s.text for s in selections if s.field_type == FieldType.AMOUNT), None)
        return detect_amount_format(amount)

    def _confidence(self, bodies: list[str], segments: list[PatternSegment]) -> float:
        anchors = [s for s in segments if isinstance(s, FixedText)]
        if not anchors:
            return NO_ANCHOR_CONFIDENCE

        average_length = sum(len(body) for body in bodies) / len(bodies)
        if average_length <= 0:
            return NO_ANCHOR_CONFIDENCE
        base = clamp_confidence(sum(len(a.text) for a in anchors) / average_length)

        if len(bodies) >= 3:
            example_bonus = 0.1
        elif len(bodies) >= 2:
            example_bonus = 0.05
        else:
            example_bonus = 0.0

        if len(anchors) >= 3:
            anchor_bonus = 0.1
        elif len(anchors) >= 2:
            anchor_bonus = 0.05
        else:
            anchor_bonus = 0.0

        return clamp_confidence(base + example_bonus + anchor_bonus)
