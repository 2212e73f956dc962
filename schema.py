from pydantic import BaseModel, Field
from typing import List, Optional


class DynamicFilter(BaseModel):
    fieldCode: str
    operator: str
    value: str


class DateField(BaseModel):
    fieldCode: str
    operator: str


class DateRange(BaseModel):
    value: str
    field: List[DateField]


class HRFilterArgs(BaseModel):
    dynamicFilter: Optional[List[DynamicFilter]] = None


class HRDetailArgs(HRFilterArgs):
    startDate: Optional[DateRange] = None
    endDate: Optional[DateRange] = None


class WeatherArgs(BaseModel):
    city: str = Field(..., min_length=1)


class ChatArgs(BaseModel):
    prompt: str


class TokenArgs(BaseModel):
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
