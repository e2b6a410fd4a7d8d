from typing import Annotated

from fastapi import APIRouter, Depends

from sms_categorizer.api.dependencies import get_pipeline
from sms_categorizer.api.schemas import ParseMessageRequest, ParseMessageResponse
from sms_categorizer.services.categorization import CategorizationPipeline

router = APIRouter(prefix="/api/messages")


@router.post("/parse", response_model=ParseMessageResponse)
async def parse_message(
    req: ParseMessageRequest,
    pipeline: Annotated[CategorizationPipeline, Depends(get_pipeline)],
) -> ParseMessageResponse:
    outcome, categorized = await pipeline.parse_message(
        req.message_id,
        req.sender_id,
        req.body,
        timestamp=req.timestamp,
    )
    return ParseMessageResponse(
        matched=outcome.matched,
        pattern_id=outcome.pattern.id if outcome.pattern else None,
        match=outcome.match,
        transaction=outcome.transaction,
        categorized=categorized,
    )
