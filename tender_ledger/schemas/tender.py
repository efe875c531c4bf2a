from pydantic import BaseModel
from pydantic.alias_generators import to_camel
from typing import Optional
from datetime import datetime
from uuid import UUID


class CamelModel(BaseModel):
    """JSON in and out uses camelCase keys"""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


# ------------------------
# Tender Schemas
# ------------------------
class TenderCreate(CamelModel):
    # Left optional so blanks are reported as one InvalidInput by the service
    name: Optional[str] = None
    description: Optional[str] = None
    service_type: Optional[str] = None
    organization_id: Optional[str] = None
    creator_username: Optional[str] = None


class TenderOut(CamelModel):
    id: UUID
    name: str
    description: str
    service_type: str
    status: str
    organization_id: UUID
    version: int
    created_at: datetime


class TenderHistoryOut(CamelModel):
    """One past version of a tender"""
    tender_id: UUID
    version: int
    name: str
    description: str
    service_type: str
    status: str
    recorded_at: Optional[datetime] = None
