from typing import Annotated

from fastapi import APIRouter, Depends

from sms_categorizer.api.dependencies import get_pipeline
from sms_categorizer.api.schemas import CategorizeBatchRequest, CategorizeRequest, CategoryInfo
from sms_categorizer.models import CategorizedTransaction, Category
from sms_categorizer.services.categorization import CategorizationPipeline

router = APIRouter(prefix="/api")


@router.post("/categorize", response_model=CategorizedTransaction)
async def categorize_transaction(
    req: CategorizeRequest,
    pipeline: Annotated[CategorizationPipeline, Depends(get_pipeline)],
) -> CategorizedTransaction:
    return await pipeline.categorize(req.transaction)


@router.post("/categorize/batch", response_model=list[CategorizedTransaction])
async def categorize_batch(
    req: CategorizeBatchRequest,
    pipeline: Annotated[CategorizationPipeline, Depends(get_pipeline)],
) -> list[CategorizedTransaction]:
    return await pipeline.categorize_all(req.transactions)


@router.get("/categories", response_model=list[CategoryInfo])
async def get_categories() -> list[CategoryInfo]:
    return [
        CategoryInfo(
            name=category,
            display_name=category.display_name,
            primary_category=category.primary_category.display_name,
            exclude_from_spending=category.exclude_from_spending,
        )
        for category in Category
    ]
