from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import ValidationError

from leave_service.core import data_layer, leaves
from leave_service.core.db import get_database
from leave_service.schemas.common import ApiResponse
from leave_service.schemas.leave import (
    LeaveCreate,
    LeaveFilters,
    LeaveRecord,
    LeaveSource,
    LeaveStats,
    LeaveStatusUpdate,
    LeaveUpdate,
    PersonType,
)

router = APIRouter(
    prefix="/leaves",
    tags=["leaves"],
)


def _respond(result: ApiResponse, response: Response) -> ApiResponse:
    # 바디는 항상 {success, data | error}, HTTP 상태 코드만 결과에 맞춘다
    response.status_code = result.status_code
    return result


@router.get(
    "",
    response_model=ApiResponse[List[LeaveRecord]],
    response_model_exclude_none=True,
)
async def list_leaves(
    response: Response,
    person_type: Optional[PersonType] = Query(None, alias="personType"),
    person_id: Optional[str] = Query(None, alias="personId"),
    leave_status: Optional[str] = Query(None, alias="status"),
    start_after: Optional[str] = Query(None, alias="startAfter"),
    end_before: Optional[str] = Query(None, alias="endBefore"),
    unit: Optional[str] = None,
    limit: Optional[int] = Query(None, ge=1),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    """
    leaves + schedules 통합 휴가 목록.

    예:
    GET /leaves?personType=officer
    GET /leaves?status=승인&startAfter=2025-01-01&endBefore=2025-12-31
    """
    try:
        filters = LeaveFilters(
            personType=person_type,
            personId=person_id,
            status=leave_status,
            startAfter=start_after,
            endBefore=end_before,
            unit=unit,
            limit=limit,
        )
    except ValidationError as exc:
        return _respond(ApiResponse.fail(f"Invalid filter: {exc.errors()[0]['msg']}"), response)

    return _respond(await data_layer.get_integrated_leaves(db, filters), response)


@router.post(
    "",
    response_model=ApiResponse[LeaveRecord],
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
async def create_leave(
    payload: LeaveCreate,
    response: Response,
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return _respond(await leaves.add_leave(db, payload), response)


@router.get(
    "/current",
    response_model=ApiResponse[List[LeaveRecord]],
    response_model_exclude_none=True,
)
async def list_current_leaves(
    response: Response,
    today: Optional[date] = None,
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return _respond(await leaves.get_current_leaves(db, today), response)


@router.get(
    "/stats",
    response_model=ApiResponse[LeaveStats],
    response_model_exclude_none=True,
)
async def leave_stats(
    response: Response,
    year: int = Query(..., ge=1, le=9998),
    month: Optional[int] = Query(None, ge=1, le=12),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return _respond(await leaves.get_leave_stats(db, year, month), response)


@router.get(
    "/person/{person_type}/{person_id}",
    response_model=ApiResponse[List[LeaveRecord]],
    response_model_exclude_none=True,
)
async def list_person_leaves(
    person_type: PersonType,
    person_id: str,
    response: Response,
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return _respond(await leaves.get_person_leaves(db, person_type, person_id), response)


@router.get(
    "/{leave_id}",
    response_model=ApiResponse[LeaveRecord],
    response_model_exclude_none=True,
)
async def get_leave(
    leave_id: str,
    response: Response,
    collection: LeaveSource = "leaves",
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return _respond(await data_layer.get_leave(db, leave_id, collection), response)


@router.patch(
    "/{leave_id}",
    response_model=ApiResponse[LeaveRecord],
    response_model_exclude_none=True,
)
async def update_leave(
    leave_id: str,
    payload: LeaveUpdate,
    response: Response,
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return _respond(await leaves.update_leave(db, leave_id, payload), response)


@router.patch(
    "/{leave_id}/status",
    response_model=ApiResponse[LeaveRecord],
    response_model_exclude_none=True,
)
async def update_leave_status(
    leave_id: str,
    payload: LeaveStatusUpdate,
    response: Response,
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    """
    결재자의 승인 / 반려 처리.
    collection은 우선 조회할 컬렉션일 뿐이며, 없으면 다른 컬렉션에서도 찾는다.
    """
    result = await data_layer.update_leave_status(
        db,
        leave_id,
        payload.status,
        payload.collection,
        payload.approverName,
    )
    return _respond(result, response)


@router.delete(
    "/{leave_id}",
    response_model=ApiResponse[None],
    response_model_exclude_none=True,
)
async def delete_leave(
    leave_id: str,
    response: Response,
    collection: LeaveSource = "leaves",
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return _respond(await data_layer.delete_leave_document(db, leave_id, collection), response)
