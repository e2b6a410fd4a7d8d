from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from sms_categorizer.app import app
from sms_categorizer.services.categorization import CategorizationPipeline
from sms_categorizer.services.storage import PatternStore, RuleStore

client = TestClient(app)


def transaction_payload(message_id: int, merchant: str, raw_message: str = "Bancolombia le informa compra") -> dict:
    return {
        "message_id": message_id,
        "amount": 50000,
        "merchant": merchant,
        "institution": "Bancolombia",
        "timestamp": "2024-05-01T12:00:00",
        "raw_message": raw_message,
    }


@pytest.fixture
def pipeline(tmp_path) -> Generator[CategorizationPipeline, None, None]:
    had_pipeline = hasattr(app.state, "pipeline")
    original_pipeline = getattr(app.state, "pipeline", None)
    pipeline = CategorizationPipeline(
        rule_store=RuleStore(str(tmp_path / "rules.json")),
        pattern_store=PatternStore(str(tmp_path / "patterns.json")),
    )
    app.state.pipeline = pipeline
    yield pipeline
    if had_pipeline:
        app.state.pipeline = original_pipeline
    else:
        delattr(app.state, "pipeline")


def test_categorize(pipeline: CategorizationPipeline) -> None:
    response = client.post("/api/categorize", json={"transaction": transaction_payload(1, "EXITO")})
    assert response.status_code == 200
    data = response.json()
    assert data["category"] == "GROCERIES"
    assert data["match_type"] == "EXACT"
    assert data["confidence"] == 0.95
    assert data["user_corrected"] is False


def test_categorize_rejects_non_positive_amount(pipeline: CategorizationPipeline) -> None:
    payload = transaction_payload(1, "EXITO")
    payload["amount"] = -10
    response = client.post("/api/categorize", json={"transaction": payload})
    assert response.status_code == 422


def test_categorize_batch(pipeline: CategorizationPipeline) -> None:
    response = client.post(
        "/api/categorize/batch",
        json={"transactions": [transaction_payload(1, "UBER"), transaction_payload(2, "QWERTY ZXCV")]},
    )
    assert response.status_code == 200
    assert [item["category"] for item in response.json()] == ["TAXI_RIDESHARE", "UNCATEGORIZED"]


def test_get_categories() -> None:
    response = client.get("/api/categories")
    assert response.status_code == 200
    data = {item["name"]: item for item in response.json()}
    assert len(data) == 13
    assert data["CREDIT_CARD_PAYMENT"]["exclude_from_spending"] is True
    assert data["GROCERIES"]["exclude_from_spending"] is False


def test_learned_rule_overrides_dictionary(pipeline: CategorizationPipeline) -> None:
    response = client.post(
        "/api/rules/learn",
        json={
            "transactions": [transaction_payload(1, "EXITO"), transaction_payload(2, "Exito S.A.")],
            "category": "PHARMACY",
        },
    )
    assert response.status_code == 200
    rule = response.json()
    assert rule["conditions"][0] == {"kind": "merchant_equals", "name": "EXITO"}
    assert rule["learned_from_examples"] == ["1", "2"]

    response = client.post("/api/categorize", json={"transaction": transaction_payload(3, "EXITO")})
    assert response.json()["category"] == "PHARMACY"
    assert response.json()["match_type"] == "USER_RULE"

    assert [r["id"] for r in client.get("/api/rules").json()] == [rule["id"]]


def test_learn_rule_declined(pipeline: CategorizationPipeline) -> None:
    response = client.post(
        "/api/rules/learn",
        json={"transactions": [transaction_payload(1, "EXITO")], "category": "GROCERIES"},
    )
    assert response.status_code == 422
    assert pipeline.rule_store.get_all_rules() == []


def test_rule_priority_and_delete(pipeline: CategorizationPipeline) -> None:
    rule = client.post(
        "/api/rules/learn",
        json={
            "transactions": [transaction_payload(1, "CARULLA"), transaction_payload(2, "CARULLA")],
            "category": "GROCERIES",
        },
    ).json()

    response = client.patch(f"/api/rules/{rule['id']}/priority", json={"priority": 300})
    assert response.status_code == 200
    assert response.json()["priority"] == 300

    assert client.delete(f"/api/rules/{rule['id']}").status_code == 200
    assert client.delete(f"/api/rules/{rule['id']}").status_code == 404
    assert client.patch("/api/rules/missing/priority", json={"priority": 1}).status_code == 404


def test_infer_pattern(pipeline: CategorizationPipeline, purchase_examples) -> None:
    response = client.post(
        "/api/patterns/infer",
        json={"examples": [e.model_dump(mode="json") for e in purchase_examples]},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["segments"][0] == {"kind": "fixed_text", "text": "Compra por", "fuzzy_allowed": True}
    assert data["amount_format"]["currency_symbol"] == "$"
    assert pipeline.pattern_store.get_all_patterns() == []


def test_infer_pattern_declined(pipeline: CategorizationPipeline, purchase_examples) -> None:
    response = client.post(
        "/api/patterns/infer",
        json={"examples": [purchase_examples[0].model_dump(mode="json")]},
    )
    assert response.status_code == 422


def test_teach_pattern_and_parse_message(pipeline: CategorizationPipeline, purchase_examples) -> None:
    response = client.post(
        "/api/patterns",
        json={
            "bank_name": "Bancolombia",
            "examples": [e.model_dump(mode="json") for e in purchase_examples],
            "default_category": "GROCERIES",
        },
    )
    assert response.status_code == 200
    pattern = response.json()
    assert pattern["sender_ids"] == ["Bancolombia"]
    assert pattern["id"].startswith("pattern_")

    response = client.post(
        "/api/messages/parse",
        json={"message_id": 7, "sender_id": "bancolombia", "body": "Compra por $12.300 en D1"},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["matched"] is True
    assert data["pattern_id"] == pattern["id"]
    assert data["match"]["fields"] == {"AMOUNT": "$12.300", "MERCHANT": "D1"}
    assert data["transaction"]["amount"] == 12300.0
    assert data["categorized"]["category"] == "GROCERIES"
    assert data["categorized"]["match_type"] == "USER_PATTERN"

    stored = pipeline.pattern_store.get_pattern(pattern["id"])
    assert stored.success_count == 1
    assert stored.fail_count == 0


def test_parse_message_falls_back_to_engine(pipeline: CategorizationPipeline, purchase_examples) -> None:
    client.post(
        "/api/patterns",
        json={"bank_name": "Bancolombia", "examples": [e.model_dump(mode="json") for e in purchase_examples]},
    )
    response = client.post(
        "/api/messages/parse",
        json={"sender_id": "Bancolombia", "body": "Compra por $8.000 en JUAN VALDEZ"},
    )
    data = response.json()
    assert data["matched"] is True
    assert data["categorized"]["category"] == "COFFEE"
    assert data["categorized"]["match_type"] == "EXACT"


def test_parse_message_unknown_sender(pipeline: CategorizationPipeline) -> None:
    response = client.post("/api/messages/parse", json={"sender_id": "Nequi", "body": "Recibiste $10.000"})
    assert response.status_code == 200
    assert response.json() == {
        "matched": False,
        "pattern_id": None,
        "match": None,
        "transaction": None,
        "categorized": None,
    }


def test_delete_pattern_not_found(pipeline: CategorizationPipeline) -> None:
    assert client.delete("/api/patterns/missing").status_code == 404


def test_pipeline_not_initialized() -> None:
    had_pipeline = hasattr(app.state, "pipeline")
    original_pipeline = getattr(app.state, "pipeline", None)
    if had_pipeline:
        delattr(app.state, "pipeline")
    try:
        response = client.post("/api/categorize", json={"transaction": transaction_payload(1, "EXITO")})
        assert response.status_code == 500
    finally:
        if had_pipeline:
            app.state.pipeline = original_pipeline
