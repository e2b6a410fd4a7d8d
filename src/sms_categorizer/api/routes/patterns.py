from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from sms_categorizer.api.dependencies import get_pipeline
from sms_categorizer.api.schemas import InferPatternRequest, TeachPatternRequest
from sms_categorizer.logger import get_logger
from sms_categorizer.models import InferredPattern, LearnedBankPattern
from sms_categorizer.services.categorization import CategorizationPipeline

logger = get_logger(__name__)

router = APIRouter(prefix="/api/patterns")

_DECLINED = (
    "Could not infer a pattern: need 2+ examples highlighting the same fields "
    "with in-range, non-overlapping selections"
)


@router.get("", response_model=list[LearnedBankPattern])
async def list_patterns(
    pipeline: Annotated[CategorizationPipeline, Depends(get_pipeline)],
) -> list[LearnedBankPattern]:
    return pipeline.pattern_store.get_all_patterns()


@router.post("/infer", response_model=InferredPattern)
async def infer_pattern(
    req: InferPatternRequest,
    pipeline: Annotated[CategorizationPipeline, Depends(get_pipeline)],
) -> InferredPattern:
    pattern = await pipeline.infer_pattern(req.examples)
    if pattern is None:
        raise HTTPException(status_code=422, detail=_DECLINED)
    return pattern


@router.post("", response_model=LearnedBankPattern)
async def teach_pattern(
    req: TeachPatternRequest,
    pipeline: Annotated[CategorizationPipeline, Depends(get_pipeline)],
) -> LearnedBankPattern:
    pattern = await pipeline.teach_pattern(
        req.bank_name,
        req.examples,
        sender_ids=req.sender_ids,
        default_category=req.default_category,
    )
    if pattern is None:
        raise HTTPException(status_code=422, detail=_DECLINED)
    return pattern


@router.delete("/{pattern_id}")
async def delete_pattern(
    pattern_id: str,
    pipeline: Annotated[CategorizationPipeline, Depends(get_pipeline)],
) -> dict[str, str]:
    if not pipeline.pattern_store.delete_pattern(pattern_id):
        raise HTTPException(status_code=404, detail="Pattern not found")
    logger.info("[PATTERNS] Deleted pattern %s", pattern_id)
    return {"status": "deleted", "id": pattern_id}
