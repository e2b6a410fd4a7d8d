from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from sms_categorizer.api.dependencies import get_pipeline
from sms_categorizer.api.schemas import LearnRuleRequest, PriorityRequest
from sms_categorizer.logger import get_logger
from sms_categorizer.models import UserCategorizationRule
from sms_categorizer.services.categorization import CategorizationPipeline

logger = get_logger(__name__)

router = APIRouter(prefix="/api/rules")


@router.get("", response_model=list[UserCategorizationRule])
async def list_rules(
    pipeline: Annotated[CategorizationPipeline, Depends(get_pipeline)],
) -> list[UserCategorizationRule]:
    return pipeline.rule_store.get_all_rules()


@router.post("/learn", response_model=UserCategorizationRule)
async def learn_rule(
    req: LearnRuleRequest,
    pipeline: Annotated[CategorizationPipeline, Depends(get_pipeline)],
) -> UserCategorizationRule:
    rule = await pipeline.learn_rule(req.transactions, req.category, req.name)
    if rule is None:
        raise HTTPException(
            status_code=422,
            detail="Could not learn a rule: need 2+ transactions with a common merchant or sender",
        )
    return rule


@router.patch("/{rule_id}/priority", response_model=UserCategorizationRule)
async def update_priority(
    rule_id: str,
    req: PriorityRequest,
    pipeline: Annotated[CategorizationPipeline, Depends(get_pipeline)],
) -> UserCategorizationRule:
    rule = pipeline.rule_store.update_rule_priority(rule_id, req.priority)
    if rule is None:
        raise HTTPException(status_code=404, detail="Rule not found")
    return rule


@router.delete("/{rule_id}")
async def delete_rule(
    rule_id: str,
    pipeline: Annotated[CategorizationPipeline, Depends(get_pipeline)],
) -> dict[str, str]:
    if not pipeline.rule_store.delete_rule(rule_id):
        raise HTTPException(status_code=404, detail="Rule not found")
    logger.info("[RULES] Deleted rule %s", rule_id)
    return {"status": "deleted", "id": rule_id}
