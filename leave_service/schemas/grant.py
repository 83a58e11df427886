from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from leave_service.schemas.leave import PersonType


class LeaveTypeBalance(BaseModel):
    """인원별 휴가 종류 하나의 부여/잔여 일수."""
    id: str
    name: str
    days: int = 0
    remainingDays: int = 0
    isDefault: bool = False
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None


class PersonLeaveBalance(BaseModel):
    userId: str
    personType: Optional[PersonType] = None
    personName: Optional[str] = None
    personRank: Optional[str] = None
    leaveTypes: List[LeaveTypeBalance] = Field(default_factory=list)
    updatedAt: Optional[str] = None


class LeaveGrantCreate(BaseModel):
    """POST /leave-grants 요청 바디"""
    personType: PersonType
    personId: str = Field(..., min_length=1)
    personName: str = ""
    personRank: str = ""
    leaveTypeName: str = Field(..., min_length=1)
    days: int = Field(..., ge=1)
    reason: str = "정기 부여"
    grantedAt: Optional[datetime] = None


class LeaveGrant(BaseModel):
    """휴가 부여 내역 응답용"""
    id: str
    personId: str
    personName: str
    personRank: str
    personType: PersonType
    leaveTypeName: str
    days: int
    reason: str = ""
    grantedAt: str
    grantedBy: str = ""
    grantedByName: str = ""
