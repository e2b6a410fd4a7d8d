from datetime import datetime

import pytest

from sms_categorizer.models import FieldSelection, FieldType, TeachingExample


def make_example(example_id: str, body: str, *spans: tuple[FieldType, int, int]) -> TeachingExample:
    return TeachingExample(
        id=example_id,
        body=body,
        sender_id="Bancolombia",
        selections=tuple(
            FieldSelection(field_type=field_type, start=start, end=end, text=body[start:end])
            for field_type, start, end in spans
        ),
        created_at=datetime(2024, 5, 1, 9, 30),
    )


@pytest.fixture
def purchase_examples() -> list[TeachingExample]:
    return [
        make_example(
            "ex1",
            "Compra por $50.000 en EXITO",
            (FieldType.AMOUNT, 11, 18),
            (FieldType.MERCHANT, 22, 27),
        ),
        make_example(
            "ex2",
            "Compra por $75.000 en CARULLA",
            (FieldType.AMOUNT, 11, 18),
            (FieldType.MERCHANT, 22, 29),
        ),
    ]
