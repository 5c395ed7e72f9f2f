import uuid
from fastapi import APIRouter, Depends, Query, status

from api.crud.earning_rule import EarningRuleService
from api.crud.earning_rule.schema import EarningRuleCreate, EarningRuleRead, EarningRuleUpdate
from api.models import User
from api.security import require_admin
from . import get_earning_rule_service

router = APIRouter()


@router.get("", response_model=list[EarningRuleRead], summary="Coin earning rules, highest priority first")
async def list_rules(
    is_active: bool | None = Query(None),
    admin: User = Depends(require_admin),
    service: EarningRuleService = Depends(get_earning_rule_service),
):
    return await service.list_all(is_active)


@router.post(
        "",
        response_model=EarningRuleRead,
        status_code=status.HTTP_201_CREATED,
        summary="Create a coin earning rule"
        )
async def create_rule(
    dto: EarningRuleCreate,
    admin: User = Depends(require_admin),
    service: EarningRuleService = Depends(get_earning_rule_service),
):
    return await service.create(dto, admin)


@router.patch("/{rule_id}", response_model=EarningRuleRead, summary="Update a coin earning rule")
async def update_rule(
    rule_id: uuid.UUID,
    dto: EarningRuleUpdate,
    admin: User = Depends(require_admin),
    service: EarningRuleService = Depends(get_earning_rule_service),
):
    """
    Change a rule's name, coin amount, calculation, conditions, active flag or
    priority. Other fields in the body are ignored.

    Request status:
    - 200 OK - rule updated
    - 400 Bad Request - nothing to update, or `coin_amount` is not above 0
    - 403 Forbidden - caller is not an admin
    - 404 Not Found - no such rule
    """
    return await service.update(rule_id, dto, admin)
