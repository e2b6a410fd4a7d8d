from abc import ABC, abstractmethod

from sms_categorizer.models import CategorizationResult, Transaction


class Classifier(ABC):
    @abstractmethod
    def classify(self, transaction: Transaction) -> CategorizationResult | None:
        """Attempt to categorize the transaction."""
        pass
