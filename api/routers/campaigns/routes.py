import uuid
from fastapi import APIRouter, Depends, Query, status

from api.crud.campaign import GamificationService
from api.crud.campaign.bonus import BonusCampaignService
from api.crud.campaign.schema import (
    BonusCampaignCreate,
    BonusCampaignRead,
    BonusCampaignUpdate,
    CampaignWithProgress,
    CompleteTaskRequest,
    GamificationCampaignCreate,
    GamificationCampaignRead,
    GamificationCampaignUpdate,
    ProgressRead,
)
from api.crud.ledger.schema import CoinTransactionRead
from api.models import User
from api.routers.coins.schemas import Pagination
from api.security import require_admin, require_seller
from config import ENV
from services.redis import RedisCache, get_cache
from . import get_bonus_service, get_gamification_service
from .schemas import (
    BonusCampaignPage,
    CompleteTaskResponse,
    ConditionTwoResponse,
    DeleteResponse,
    ProgressListResponse,
)

env = ENV()

router = APIRouter()
admin_router = APIRouter()
bonus_router = APIRouter()


@router.get("", response_model=list[CampaignWithProgress], summary="Running campaigns with own progress")
async def list_my_campaigns(
    seller: User = Depends(require_seller),
    service: GamificationService = Depends(get_gamification_service),
    cache: RedisCache = Depends(get_cache),
):
    """
    Active gamification campaigns whose window contains the current time,
    each with the calling seller's progress (or `null` when not started).
    """
    key = cache.key("campaigns", seller.id)
    cached = await cache.get_json(key)
    if cached is not None:
        return cached

    rows = await service.list_for_seller(seller.id)
    body = [
        CampaignWithProgress(
            campaign=GamificationCampaignRead.model_validate(campaign),
            progress=ProgressRead.model_validate(progress) if progress else None,
        ).model_dump(mode="json")
        for campaign, progress in rows
    ]
    await cache.set_json(key, body)
    return body


@router.get("/bonus", response_model=list[BonusCampaignRead], summary="Running coin bonus campaigns")
async def list_bonus_campaigns(
    trip_id: uuid.UUID | None = Query(None, description="Only bonuses that apply to this trip"),
    seller: User = Depends(require_seller),
    service: BonusCampaignService = Depends(get_bonus_service),
    cache: RedisCache = Depends(get_cache),
):
    key = cache.key("bonus", trip_id or "all")
    cached = await cache.get_json(key)
    if cached is not None:
        return cached

    body = [BonusCampaignRead.model_validate(c).model_dump(mode="json") for c in await service.list_active(trip_id)]
    await cache.set_json(key, body, ttl=env.BONUS_CACHE_TTL_SECONDS)
    return body


@router.post(
        "/{campaign_id}/complete-task",
        response_model=CompleteTaskResponse,
        summary="Complete the campaign task"
        )
async def complete_task(
    campaign_id: uuid.UUID,
    dto: CompleteTaskRequest,
    seller: User = Depends(require_seller),
    service: GamificationService = Depends(get_gamification_service),
    cache: RedisCache = Depends(get_cache),
):
    """
    Complete condition 1 of a campaign and receive its reward.

    Request status:
    - 200 OK - reward granted
    - 400 Bad Request - campaign inactive (`campaign_not_active`) or outside its window (`campaign_out_of_window`)
    - 404 Not Found - no such campaign
    - 409 Conflict - the task was already completed, no second reward is granted

    > [!important]
    > Request headers:
    > - `X-API-KEY: str` - service key (required)
    > - `X-User-Id: uuid` - the seller completing the task (required)
    """
    tx, progress = await service.complete_task(seller, campaign_id, dto.task_data)
    await cache.invalidate_seller(seller.id)
    return CompleteTaskResponse(transaction_id=tx.id, progress=ProgressRead.model_validate(progress))


@admin_router.get("", response_model=list[GamificationCampaignRead], summary="All gamification campaigns")
async def list_campaigns(
    is_active: bool | None = Query(None),
    admin: User = Depends(require_admin),
    service: GamificationService = Depends(get_gamification_service),
):
    return await service.list_all(is_active)


@admin_router.post(
        "",
        response_model=GamificationCampaignRead,
        status_code=status.HTTP_201_CREATED,
        summary="Create a gamification campaign"
        )
async def create_campaign(
    dto: GamificationCampaignCreate,
    admin: User = Depends(require_admin),
    service: GamificationService = Depends(get_gamification_service),
    cache: RedisCache = Depends(get_cache),
):
    """
    Input:
    - `condition_1_reward_amount: int` - coins for completing condition 1, greater than 0
    - `condition_1_reward_type` - `locked` or `redeemable`
    - `condition_2_action` - `unlock` (free the condition 1 reward), `bonus` or `none`
    - `condition_2_bonus_amount: int` - extra redeemable coins on condition 2
    - `start_date`, `end_date` - the end must be after the start
    """
    campaign = await service.create(dto, admin)
    await cache.invalidate_campaigns()
    return campaign


@admin_router.get("/progress", response_model=ProgressListResponse, summary="Seller progress across campaigns")
async def list_progress(
    campaign_id: uuid.UUID | None = Query(None),
    seller_id: uuid.UUID | None = Query(None),
    completed: bool | None = Query(None, description="Both conditions completed"),
    admin: User = Depends(require_admin),
    service: GamificationService = Depends(get_gamification_service),
):
    items, stats = await service.list_progress(campaign_id, seller_id, completed)
    return ProgressListResponse(items=[ProgressRead.model_validate(p) for p in items], stats=stats)


@admin_router.patch("/{campaign_id}", response_model=GamificationCampaignRead, summary="Update a gamification campaign")
async def update_campaign(
    campaign_id: uuid.UUID,
    dto: GamificationCampaignUpdate,
    admin: User = Depends(require_admin),
    service: GamificationService = Depends(get_gamification_service),
    cache: RedisCache = Depends(get_cache),
):
    campaign = await service.update(campaign_id, dto, admin)
    await cache.invalidate_campaigns()
    return campaign


@admin_router.delete("/{campaign_id}", response_model=DeleteResponse, summary="Delete or deactivate a gamification campaign")
async def delete_campaign(
    campaign_id: uuid.UUID,
    admin: User = Depends(require_admin),
    service: GamificationService = Depends(get_gamification_service),
    cache: RedisCache = Depends(get_cache),
):
    """
    Campaigns that sellers already made progress on are only deactivated so
    their history stays intact; untouched campaigns are removed.
    """
    outcome = await service.delete(campaign_id, admin)
    await cache.invalidate_campaigns()
    return DeleteResponse(id=campaign_id, outcome=outcome)


@admin_router.post(
        "/{campaign_id}/sellers/{seller_id}/complete-condition-2",
        response_model=ConditionTwoResponse,
        summary="Verify condition 2 for a seller"
        )
async def complete_condition_2(
    campaign_id: uuid.UUID,
    seller_id: uuid.UUID,
    admin: User = Depends(require_admin),
    service: GamificationService = Depends(get_gamification_service),
    cache: RedisCache = Depends(get_cache),
):
    """
    Mark condition 2 as met. Depending on the campaign this unlocks the
    condition 1 reward and/or credits the condition 2 bonus.

    Request status:
    - 200 OK - campaign completed for the seller
    - 400 Bad Request - condition 1 not completed yet
    - 409 Conflict - condition 2 already completed
    """
    progress, transactions = await service.complete_condition_2(campaign_id, seller_id, admin)
    await cache.invalidate_seller(seller_id)
    return ConditionTwoResponse(
        progress=ProgressRead.model_validate(progress),
        transactions=[CoinTransactionRead.model_validate(t) for t in transactions],
    )


@bonus_router.get("", response_model=BonusCampaignPage, summary="All coin bonus campaigns")
async def list_bonus_campaigns_admin(
    is_active: bool | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    admin: User = Depends(require_admin),
    service: BonusCampaignService = Depends(get_bonus_service),
):
    items, total = await service.list_all(is_active, page, page_size)
    return BonusCampaignPage(
        items=[BonusCampaignRead.model_validate(c) for c in items],
        pagination=Pagination.build(page, page_size, total),
    )


@bonus_router.post(
        "",
        response_model=BonusCampaignRead,
        status_code=status.HTTP_201_CREATED,
        summary="Create a coin bonus campaign"
        )
async def create_bonus_campaign(
    dto: BonusCampaignCreate,
    admin: User = Depends(require_admin),
    service: BonusCampaignService = Depends(get_bonus_service),
    cache: RedisCache = Depends(get_cache),
):
    campaign = await service.create(dto, admin)
    await cache.invalidate_campaigns()
    return campaign


@bonus_router.patch("/{campaign_id}", response_model=BonusCampaignRead, summary="Update a coin bonus campaign")
async def update_bonus_campaign(
    campaign_id: uuid.UUID,
    dto: BonusCampaignUpdate,
    admin: User = Depends(require_admin),
    service: BonusCampaignService = Depends(get_bonus_service),
    cache: RedisCache = Depends(get_cache),
):
    campaign = await service.update(campaign_id, dto, admin)
    await cache.invalidate_campaigns()
    return campaign


@bonus_router.delete("/{campaign_id}", response_model=DeleteResponse, summary="Delete or deactivate a coin bonus campaign")
async def delete_bonus_campaign(
    campaign_id: uuid.UUID,
    admin: User = Depends(require_admin),
    service: BonusCampaignService = Depends(get_bonus_service),
    cache: RedisCache = Depends(get_cache),
):
    outcome = await service.delete(campaign_id, admin)
    await cache.invalidate_campaigns()
    return DeleteResponse(id=campaign_id, outcome=outcome)
