from pydantic import BaseModel, Field, field_validator
from datetime import date
from typing import List, Optional
from enum import Enum

from longtrip.models.chunk_models import ChunkInfo

class Pace(str, Enum):
    EASY = "easy"
    MODERATE = "moderate"
    INTENSE = "intense"

class NightlifePreference(str, Enum):
    NONE = "none"
    LIGHT = "light"
    MODERATE = "moderate"
    HEAVY = "heavy"

class DestinationModel(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    city: Optional[str] = Field(default=None, max_length=100)
    country: Optional[str] = Field(default=None, max_length=100)
    start_date: date

    @property
    def display_name(self) -> str:
        """City when known, otherwise the destination name"""
        return self.city or self.name

class BudgetModel(BaseModel):
    total: float = Field(..., ge=0)
    currency: str = Field("USD", pattern=r"^[A-Za-z]{3}$")

    @field_validator('currency')
    @classmethod
    def normalize_currency(cls, v):
        return v.upper()

class TravelersModel(BaseModel):
    adults: int = Field(1, ge=1, le=20)
    children: int = Field(0, ge=0, le=20)
    infants: int = Field(0, ge=0, le=10)

    @property
    def total(self) -> int:
        return self.adults + self.children + self.infants

class TripPreferences(BaseModel):
    interests: List[str] = Field(default_factory=list)  # ["food", "museums", "hiking"]
    pace: Pace = Pace.MODERATE
    nightlife: NightlifePreference = NightlifePreference.NONE
    constraints: List[str] = Field(default_factory=list)  # ["wheelchair access", "no early starts"]

class Trip(BaseModel):
    duration: int = Field(..., ge=1, description="Trip length in days")
    destination: DestinationModel
    budget: Optional[BudgetModel] = None
    travelers: TravelersModel = Field(default_factory=TravelersModel)
    preferences: TripPreferences = Field(default_factory=TripPreferences)
    chunk_info: Optional[ChunkInfo] = None  # set only on chunk-scoped views

    class Config:
        json_schema_extra = {
            "examples": [
                {
                    "duration": 10,
                    "destination": {"name": "Tokyo, Japan", "start_date": "2026-04-01"},
                    "budget": {"total": 3500, "currency": "USD"},
                    "travelers": {"adults": 2, "children": 0, "infants": 0},
                    "preferences": {
                        "interests": ["food", "temples"],
                        "pace": "moderate",
                        "nightlife": "light",
                        "constraints": []
                    }
                }
            ]
        }
