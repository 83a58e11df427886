from datetime import date
from typing import Dict, Literal, Optional

from pydantic import BaseModel, Field, field_validator

PersonType = Literal["soldier", "officer"]
LeaveStatus = Literal["pending", "approved", "rejected", "personal"]
LeaveSource = Literal["leaves", "schedules"]


class LeaveRecord(BaseModel):
    """
    leaves / schedules 두 컬렉션을 하나로 합친 휴가 레코드 (응답용).
    """
    id: str
    personId: str = ""
    personType: PersonType = "soldier"
    personName: str = ""
    personRank: str = ""
    leaveType: str
    startDate: str
    endDate: str
    duration: int = 0
    destination: str = ""
    contact: str = ""
    reason: str = ""
    status: LeaveStatus = "pending"
    createdAt: str
    updatedAt: str
    approverName: str = ""
    unit: str = ""


class LeaveFilters(BaseModel):
    personType: Optional[PersonType] = None
    personId: Optional[str] = None
    status: Optional[str] = None
    startAfter: Optional[str] = None
    endBefore: Optional[str] = None
    unit: Optional[str] = None
    limit: Optional[int] = Field(None, ge=1)

    @field_validator("startAfter", "endBefore")
    @classmethod
    def validate_date_bound(cls, v: Optional[str]) -> Optional[str]:
        # 날짜 단위 비교만 하므로 앞 10자리가 YYYY-MM-DD 이어야 함
        if v is None:
            return v
        date.fromisoformat(v[:10])
        return v


class LeaveCreate(BaseModel):
    """POST /leaves 요청 바디"""
    personId: str = Field(..., min_length=1)
    personType: PersonType
    personName: str = Field(..., min_length=1)
    personRank: str = ""
    leaveType: str = Field(..., min_length=1)
    startDate: date
    endDate: date
    destination: str = ""
    contact: str = ""
    reason: str = ""
    status: str = "pending"
    unit: str = ""


class LeaveUpdate(BaseModel):
    """PATCH /leaves/{id} 요청 바디

    id, createdAt 같은 필드가 들어오면 에러가 나야 함.
    """
    personName: Optional[str] = None
    personRank: Optional[str] = None
    leaveType: Optional[str] = None
    startDate: Optional[date] = None
    endDate: Optional[date] = None
    destination: Optional[str] = None
    contact: Optional[str] = None
    reason: Optional[str] = None
    unit: Optional[str] = None

    class Config:
        extra = "forbid"


class LeaveStatusUpdate(BaseModel):
    status: str = Field(..., min_length=1)
    approverName: Optional[str] = None
    collection: LeaveSource = "leaves"


class PersonnelStats(BaseModel):
    soldiers: int = 0
    officers: int = 0


class LeaveStats(BaseModel):
    totalLeaves: int = 0
    personnelStats: PersonnelStats = Field(default_factory=PersonnelStats)
    typeStats: Dict[str, int] = Field(default_factory=dict)
    unitStats: Dict[str, int] = Field(default_factory=dict)
    statusStats: Dict[str, int] = Field(default_factory=dict)


class LeaveTypeOption(BaseModel):
    id: str
    name: str
    isDefault: bool = True
