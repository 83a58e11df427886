from typing import List

from fastapi import APIRouter, Depends, Query, Response, status
from motor.motor_asyncio import AsyncIOMotorDatabase

from leave_service.core import balances, grants
from leave_service.core.db import get_database
from leave_service.core.leaves import DEFAULT_LEAVE_TYPES
from leave_service.schemas.common import ApiResponse
from leave_service.schemas.grant import LeaveGrant, LeaveGrantCreate, PersonLeaveBalance
from leave_service.schemas.leave import LeaveTypeOption

router = APIRouter(
    tags=["grants"],
)


@router.get(
    "/leave-types",
    response_model=ApiResponse[List[LeaveTypeOption]],
)
async def list_leave_types():
    # 현재는 기본 목록만 제공
    return ApiResponse.ok(DEFAULT_LEAVE_TYPES)


@router.post(
    "/leave-grants",
    response_model=ApiResponse[PersonLeaveBalance],
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
async def create_grant(
    payload: LeaveGrantCreate,
    response: Response,
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    result = await grants.grant_leave(db, payload)
    response.status_code = result.status_code
    return result


@router.get(
    "/leave-grants",
    response_model=ApiResponse[List[LeaveGrant]],
    response_model_exclude_none=True,
)
async def list_grants(
    response: Response,
    limit: int = Query(50, ge=1, le=500),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    result = await grants.get_granted_leaves(db, limit)
    response.status_code = result.status_code
    return result


@router.get(
    "/leave-balances/{person_id}",
    response_model=ApiResponse[PersonLeaveBalance],
    response_model_exclude_none=True,
)
async def get_balance(
    person_id: str,
    response: Response,
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    result = await balances.get_leave_balance(db, person_id)
    response.status_code = result.status_code
    return result
