import re
from collections.abc import Sequence
from typing import NamedTuple

from sms_categorizer.domain.similarity import clamp_confidence, similarity
from sms_categorizer.logger import get_logger
from sms_categorizer.models import (
    FieldType,
    FixedText,
    InferredPattern,
    PatternMatchResult,
    PatternSegment,
    Variable,
)

logger = get_logger(__name__)

DEFAULT_MIN_CONFIDENCE = 0.65
DEFAULT_FUZZY_TEXT_THRESHOLD = 0.75

_AMOUNT_RUN_RE = re.compile(r"[\d.,\s$]+")
_TEXT_END_RE = re.compile(r"[.;:\-\d]")
_DIGIT_RE = re.compile(r"\d")
_CARD_DIGITS_RE = re.compile(r"\d+", re.ASCII)
MAX_DATE_LENGTH = 15
CARD_DIGITS = 4


class AnchorMatch(NamedTuple):
    start: int
    end: int
    confidence: float


class FuzzyPatternMatcher:
    """
    Applies an inferred template to a raw message, left to right.

    Fixed anchors are located exactly (ignoring case) or, when allowed, with a
    sliding edit-distance window. Text between anchors is captured as the field
    values. There is no backtracking once an anchor has been consumed.
    """

    def __init__(
        self,
        min_confidence_threshold: float = DEFAULT_MIN_CONFIDENCE,
        fuzzy_text_threshold: float = DEFAULT_FUZZY_TEXT_THRESHOLD,
    ):
        self.min_confidence_threshold = min_confidence_threshold
        self.fuzzy_text_threshold = fuzzy_text_threshold

    def match(self, message: str, pattern: InferredPattern, pattern_id: str) -> PatternMatchResult | None:
        segments = pattern.segments
        fields: dict[FieldType, str] = {}
        scores: list[float] = []
        cursor = 0

        for index, segment in enumerate(segments):
            if isinstance(segment, FixedText):
                anchor = self.find_anchor(message, cursor, segment)
                if anchor is None:
                    logger.debug("Pattern %s: anchor '%s' not found", pattern_id, segment.text)
                    return None
                cursor = anchor.end
                scores.append(anchor.confidence)

            elif isinstance(segment, Variable):
                end = self._field_end(message, cursor, segment, segments[index + 1:])
                value = message[cursor:end].strip()
                if not self._valid_value(segment.field_type, value):
                    logger.debug("Pattern %s: no usable %s value", pattern_id, segment.field_type.value)
                    return None
                fields[segment.field_type] = value
                cursor = end
                scores.append(1.0)

            else:
                raise TypeError(f"Unsupported pattern segment: {segment!r}")

        confidence = clamp_confidence(sum(scores) / len(scores)) if scores else 0.0
        if confidence < self.min_confidence_threshold:
            logger.debug(
                "Pattern %s: confidence %.2f below threshold %.2f",
                pattern_id,
                confidence,
                self.min_confidence_threshold,
            )
            return None

        return PatternMatchResult(fields=fields, confidence=confidence, pattern_id=pattern_id)

    def find_anchor(self, message: str, cursor: int, segment: FixedText) -> AnchorMatch | None:
        text = segment.text.strip()
        if not text:
            return AnchorMatch(cursor, cursor, 1.0)

        exact = re.compile(re.escape(text), re.IGNORECASE).search(message, cursor)
        if exact:
            return AnchorMatch(exact.start(), exact.end(), 1.0)

        if not segment.fuzzy_allowed:
            return None
        return self._fuzzy_window(message, cursor, text)

    def _fuzzy_window(self, message: str, cursor: int, text: str) -> AnchorMatch | None:
        remaining = len(message) - cursor
        if remaining <= 0:
            return None

        width = min(len(text), remaining)
        best: AnchorMatch | None = None
        for start in range(cursor, len(message) - width + 1):
            score = similarity(text, message[start:start + width])
            if best is None or score > best.confidence:
                best = AnchorMatch(start, start + width, score)

        if best is None or best.confidence < self.fuzzy_text_threshold:
            return None
        return best

    def _field_end(
        self,
        message: str,
        cursor: int,
        segment: Variable,
        following: Sequence[PatternSegment],
    ) -> int:
        if following and isinstance(following[0], Variable):
            return self._heuristic_end(message, cursor, segment.field_type)

        next_anchor = next((s for s in following if isinstance(s, FixedText)), None)
        if next_anchor is None:
            return len(message)
        anchor = self.find_anchor(message, cursor, next_anchor)
        return anchor.start if anchor else len(message)

    def _heuristic_end(self, message: str, cursor: int, field_type: FieldType) -> int:
        """End of a field that is immediately followed by another field."""
        rest = message[cursor:]
        if field_type in (FieldType.AMOUNT, FieldType.BALANCE):
            # Skip leading spaces so the run starts at the amount itself.
            offset = len(rest) - len(rest.lstrip())
            run = _AMOUNT_RUN_RE.match(rest, offset)
            return cursor + (run.end() if run else len(rest))
        if field_type == FieldType.CARD_LAST_4:
            offset = len(rest) - len(rest.lstrip())
            return cursor + min(offset + CARD_DIGITS, len(rest))
        if field_type == FieldType.DATE:
            return cursor + min(MAX_DATE_LENGTH, len(rest))
        # Merchant and transaction type stop at punctuation or a digit.
        stop = _TEXT_END_RE.search(rest)
        return cursor + (stop.start() if stop else len(rest))

    def _valid_value(self, field_type: FieldType, value: str) -> bool:
        if not value:
            return False
        if field_type in (FieldType.AMOUNT, FieldType.BALANCE):
            return _DIGIT_RE.search(value) is not None
        if field_type == FieldType.CARD_LAST_4:
            return _CARD_DIGITS_RE.fullmatch(value) is not None
        return True
