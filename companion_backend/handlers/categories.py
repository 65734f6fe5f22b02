"""
App category handlers
Manual edits are stored with origin 'user' and are never replaced by
generated categories
"""

from typing import List

from companion_backend.core.coordinator import get_coordinator
from companion_backend.core.logger import get_logger
from companion_backend.models.requests import BulkUpdateCategoriesRequest, UpdateAppCategoryRequest
from companion_backend.models.responses import (
    AppCategoriesResponse,
    AppCategoryData,
    AppCategoryResponse,
    BulkUpdateData,
    BulkUpdateResponse,
)

from . import api_handler

logger = get_logger(__name__)


def _resolver():
    coordinator = get_coordinator()
    coordinator.ensure_components_initialized()
    return coordinator.resolver


@api_handler(method="GET")
async def get_app_categories() -> AppCategoriesResponse:
    """All known app categories: stored ones plus those resolved this session"""
    resolver = _resolver()
    await resolver.load()
    records = [AppCategoryData.from_record(record) for record in resolver.cached_records()]
    return AppCategoriesResponse(success=True, data=records)


@api_handler(body=UpdateAppCategoryRequest)
async def update_app_category(body: UpdateAppCategoryRequest) -> AppCategoryResponse:
    """Set the category of one app"""
    resolver = _resolver()
    try:
        record = await resolver.set_user_category(
            body.app_name, body.category, body.subcategory, body.productivity_score
        )
    except ValueError as e:
        return AppCategoryResponse(success=False, message="Invalid category", error=str(e))

    return AppCategoryResponse(
        success=True,
        message=f"Category of {record.app_name} set to {record.category}",
        data=AppCategoryData.from_record(record),
    )


@api_handler(body=BulkUpdateCategoriesRequest)
async def bulk_update_categories(body: BulkUpdateCategoriesRequest) -> BulkUpdateResponse:
    """Set the categories of several apps; invalid entries are reported back"""
    resolver = _resolver()
    updated = 0
    failed: List[str] = []
    for update in body.updates:
        try:
            await resolver.set_user_category(
                update.app_name, update.category, update.subcategory, update.productivity_score
            )
            updated += 1
        except ValueError as e:
            logger.warning(f"Skipping category update for {update.app_name}: {e}")
            failed.append(update.app_name)

    return BulkUpdateResponse(
        success=not failed,
        message=f"Updated {updated} app categories",
        data=BulkUpdateData(updated=updated, failed=failed),
    )
