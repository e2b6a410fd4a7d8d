import json
import os
from datetime import datetime, timezone
from typing import Generic, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

from sms_categorizer.logger import get_logger
from sms_categorizer.models import LearnedBankPattern, UserCategorizationRule

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class JsonStore(Generic[ModelT]):
    """Keeps records in memory by id and mirrors them to a JSON file."""

    model: type[ModelT]

    def __init__(self, data_path: str):
        self.data_path = data_path
        self._adapter = TypeAdapter(list[self.model])
        self.records: dict[str, ModelT] = {}
        self.load()

    def load(self) -> None:
        self.records = {}
        if not os.path.exists(self.data_path):
            return
        try:
            with open(self.data_path, "r", encoding="utf-8") as f:
                items = self._adapter.validate_python(json.load(f))
        except (json.JSONDecodeError, ValidationError) as exc:
            logger.warning("Ignoring unreadable store %s: %s", self.data_path, exc)
            return
        self.records = {item.id: item for item in items}

    def save(self) -> None:
        payload = self._adapter.dump_python(list(self.records.values()), mode="json")
        with open(self.data_path, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, ensure_ascii=False)

    def put(self, record: ModelT) -> None:
        self.records[record.id] = record
        self.save()

    def get(self, record_id: str) -> ModelT | None:
        return self.records.get(record_id)

    def all(self) -> list[ModelT]:
        return list(self.records.values())

    def delete(self, record_id: str) -> bool:
        if self.records.pop(record_id, None) is None:
            return False
        self.save()
        return True

    def clear(self) -> None:
        self.records = {}
        self.save()


class RuleStore(JsonStore[UserCategorizationRule]):
    model = UserCategorizationRule

    def save_rule(self, rule: UserCategorizationRule) -> None:
        self.put(rule)

    def get_rule(self, rule_id: str) -> UserCategorizationRule | None:
        return self.get(rule_id)

    def get_all_rules(self) -> list[UserCategorizationRule]:
        return self.all()

    def get_enabled_rules(self) -> list[UserCategorizationRule]:
        """Enabled rules, highest priority first."""
        enabled = [rule for rule in self.records.values() if rule.enabled]
        return sorted(enabled, key=lambda rule: rule.priority, reverse=True)

    def delete_rule(self, rule_id: str) -> bool:
        return self.delete(rule_id)

    def update_rule_priority(self, rule_id: str, priority: int) -> UserCategorizationRule | None:
        rule = self.get(rule_id)
        if rule is None:
            return None
        updated = rule.model_copy(update={"priority": priority})
        self.put(updated)
        return updated


class PatternStore(JsonStore[LearnedBankPattern]):
    model = LearnedBankPattern

    def save_pattern(self, pattern: LearnedBankPattern) -> None:
        self.put(pattern)

    def get_pattern(self, pattern_id: str) -> LearnedBankPattern | None:
        return self.get(pattern_id)

    def get_all_patterns(self) -> list[LearnedBankPattern]:
        return self.all()

    def get_pattern_by_sender_id(self, sender_id: str) -> LearnedBankPattern | None:
        sender = sender_id.strip().lower()
        for pattern in self.records.values():
            if pattern.enabled and any(s.strip().lower() == sender for s in pattern.sender_ids):
                return pattern
        return None

    def update_pattern_stats(
        self, pattern_id: str, success_count: int, fail_count: int
    ) -> LearnedBankPattern | None:
        pattern = self.get(pattern_id)
        if pattern is None:
            return None
        updated = pattern.model_copy(update={
            "success_count": success_count,
            "fail_count": fail_count,
            "updated_at": datetime.now(timezone.utc),
        })
        self.put(updated)
        return updated

    def record_match(self, pattern_id: str, success: bool) -> LearnedBankPattern | None:
        """Add one to the stored success or fail counter."""
        pattern = self.get(pattern_id)
        if pattern is None:
            return None
        return self.update_pattern_stats(
            pattern_id,
            pattern.success_count + (1 if success else 0),
            pattern.fail_count + (0 if success else 1),
        )

    def delete_pattern(self, pattern_id: str) -> bool:
        return self.delete(pattern_id)
