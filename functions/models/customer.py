"""CRM input models for proposal generation.

Read-only snapshots of one customer's CRM records. Field aliases match the
camelCase document fields stored in Firestore so documents can be validated
directly.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class CustomerData(BaseModel):
    """Customer contact and address details."""

    id: str = Field(..., description="Customer document ID")
    first_name: str = Field(..., alias="firstName")
    last_name: str = Field(..., alias="lastName")
    email: Optional[str] = None
    phone: Optional[str] = None
    address: str = Field(..., description="Street address")
    city: str
    state: str = Field(..., description="Two-letter state code")
    zip_code: str = Field(..., alias="zipCode")

    class Config:
        populate_by_name = True
        frozen = True

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def full_address(self) -> str:
        return f"{self.address}, {self.city}, {self.state} {self.zip_code}"


class PropertyData(BaseModel):
    """Property and roof characteristics.

    Every field is optional; the CRM often only knows a few of them.
    """

    property_type: Optional[str] = Field(default=None, alias="propertyType")
    year_built: Optional[int] = Field(default=None, alias="yearBuilt")
    square_footage: Optional[float] = Field(default=None, alias="squareFootage")
    stories: Optional[int] = None
    roof_type: Optional[str] = Field(default=None, alias="roofType")
    roof_age: Optional[int] = Field(default=None, alias="roofAge")
    roof_squares: Optional[float] = Field(default=None, alias="roofSquares")
    roof_pitch: Optional[str] = Field(default=None, alias="roofPitch")
    roof_condition: Optional[str] = Field(default=None, alias="roofCondition")
    property_value: Optional[float] = Field(default=None, alias="propertyValue")

    class Config:
        populate_by_name = True
        frozen = True


class InsuranceData(BaseModel):
    """Homeowner's insurance details."""

    carrier: Optional[str] = None
    policy_type: Optional[str] = Field(default=None, alias="policyType")
    policy_number: Optional[str] = Field(default=None, alias="policyNumber")
    deductible: Optional[float] = None
    claim_history: int = Field(default=0, ge=0, alias="claimHistory")

    class Config:
        populate_by_name = True
        frozen = True


class WeatherEventData(BaseModel):
    """A storm event recorded against the customer's property."""

    id: str
    event_type: str = Field(..., alias="eventType", description="hail, wind, tornado, ...")
    event_date: datetime = Field(..., alias="eventDate")
    severity: str = Field(..., description="minor, moderate, severe, catastrophic")
    hail_size: Optional[float] = Field(default=None, alias="hailSize", description="Hail diameter (inches)")
    wind_speed: Optional[float] = Field(default=None, alias="windSpeed", description="Wind speed (mph)")
    damage_reported: bool = Field(default=False, alias="damageReported")
    claim_filed: bool = Field(default=False, alias="claimFiled")

    class Config:
        populate_by_name = True
        frozen = True


class IntelItemData(BaseModel):
    """A field-intel note about the customer or property."""

    id: str
    category: str
    title: str
    content: str = ""
    priority: str = "medium"
    actionable: bool = False

    class Config:
        populate_by_name = True
        frozen = True


class InteractionData(BaseModel):
    """A logged sales interaction (call, visit, email)."""

    id: str
    type: str
    created_at: datetime = Field(..., alias="createdAt")
    outcome: Optional[str] = None
    content: Optional[str] = None

    class Config:
        populate_by_name = True
        frozen = True


class CustomerDataBundle(BaseModel):
    """Bounded snapshot of one customer's CRM data.

    History lists are newest-first.
    """

    customer: CustomerData
    property: PropertyData
    insurance: InsuranceData
    weather_events: List[WeatherEventData] = Field(default_factory=list)
    intel_items: List[IntelItemData] = Field(default_factory=list)
    interactions: List[InteractionData] = Field(default_factory=list)

    class Config:
        frozen = True
