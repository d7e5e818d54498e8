"""Proposal models for the Guardian proposal engine.

Pydantic models for the damage assessment, narrative content, provenance
snapshot and the generated proposal aggregate, plus the request/result
envelopes of the generation API.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from models.customer import (
    CustomerData,
    InsuranceData,
    PropertyData,
    WeatherEventData,
)
from models.pricing import Discount, LineItem, MaterialGrade, PricingOption


class UrgencyLevel(str, Enum):
    """How soon the homeowner should act."""

    STANDARD = "standard"
    HIGH = "high"
    URGENT = "urgent"


class ContentSource(str, Enum):
    """Which content strategy wrote the proposal prose."""

    AI = "ai"
    TEMPLATE = "template"


class DamageAssessment(BaseModel):
    """Derived judgment of roof damage cause, severity and urgency."""

    damage_type: str = Field(..., alias="damageType", description="Event type, 'multiple' or 'age'")
    damage_severity: str = Field(..., alias="damageSeverity")
    damage_description: str = Field(..., alias="damageDescription")
    affected_areas: List[str] = Field(default_factory=list, alias="affectedAreas")
    urgency_level: UrgencyLevel = Field(default=UrgencyLevel.STANDARD, alias="urgencyLevel")
    recommended_action: str = Field(..., alias="recommendedAction")
    insurance_recommendation: str = Field(..., alias="insuranceRecommendation")

    class Config:
        populate_by_name = True
        use_enum_values = True
        frozen = True


class AIGeneratedContent(BaseModel):
    """Narrative sections of the proposal (markdown where noted)."""

    executive_summary: str = Field(default="", alias="executiveSummary")
    scope_of_work: str = Field(default="", alias="scopeOfWork")
    scope_details: str = Field(default="", alias="scopeDetails", description="Markdown")
    value_proposition: str = Field(default="", alias="valueProposition", description="Markdown")
    warranty_details: str = Field(default="", alias="warrantyDetails", description="Markdown")
    insurance_notes: str = Field(default="", alias="insuranceNotes", description="Empty when no carrier is on file")
    terms_and_conditions: str = Field(default="", alias="termsAndConditions", description="Markdown")
    call_to_action: str = Field(default="", alias="callToAction", description="Markdown")

    class Config:
        populate_by_name = True
        frozen = True


class SourceDataSnapshot(BaseModel):
    """Provenance record for one generation run."""

    customer_id: str = Field(..., alias="customerId")
    customer_name: str = Field(..., alias="customerName")
    property_address: str = Field(..., alias="propertyAddress")
    weather_events_count: int = Field(..., ge=0, alias="weatherEventsCount")
    intel_items_count: int = Field(..., ge=0, alias="intelItemsCount")
    interactions_count: int = Field(..., ge=0, alias="interactionsCount")
    generated_at: datetime = Field(..., alias="generatedAt")
    data_version: str = Field(..., alias="dataVersion")

    class Config:
        populate_by_name = True
        frozen = True


class GeneratedProposal(BaseModel):
    """Everything produced by one proposal generation run."""

    customer: CustomerData
    property: PropertyData
    insurance: InsuranceData
    weather_events: List[WeatherEventData] = Field(default_factory=list, alias="weatherEvents")
    damage_assessment: DamageAssessment = Field(..., alias="damageAssessment")
    pricing_options: List[PricingOption] = Field(..., alias="pricingOptions")
    recommended_option: PricingOption = Field(..., alias="recommendedOption")
    line_items: List[LineItem] = Field(..., alias="lineItems")
    ai_content: AIGeneratedContent = Field(..., alias="aiContent")
    content_source: ContentSource = Field(default=ContentSource.TEMPLATE, alias="contentSource")
    source_data_snapshot: SourceDataSnapshot = Field(..., alias="sourceDataSnapshot")

    class Config:
        populate_by_name = True
        use_enum_values = True
        frozen = True


class ProposalGenerationRequest(BaseModel):
    """Input to proposal generation.

    specific_material, include_insurance_assistance, include_financing_options
    and urgency_level are accepted but do not change the generated proposal.
    """

    customer_id: str = Field(..., min_length=1, alias="customerId")
    created_by_id: str = Field(..., min_length=1, alias="createdById")
    material_grade: Optional[MaterialGrade] = Field(default=None, alias="materialGrade")
    specific_material: Optional[str] = Field(default=None, alias="specificMaterial")
    custom_discount: Optional[Discount] = Field(default=None, alias="customDiscount")
    include_insurance_assistance: Optional[bool] = Field(default=None, alias="includeInsuranceAssistance")
    include_financing_options: Optional[bool] = Field(default=None, alias="includeFinancingOptions")
    urgency_level: Optional[UrgencyLevel] = Field(default=None, alias="urgencyLevel")

    class Config:
        populate_by_name = True
        frozen = True


class ProposalGenerationResult(BaseModel):
    """Either a fully populated proposal or a structured failure."""

    success: bool
    proposal: Optional[GeneratedProposal] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, proposal: GeneratedProposal) -> "ProposalGenerationResult":
        return cls(success=True, proposal=proposal)

    @classmethod
    def failed(cls, error: str) -> "ProposalGenerationResult":
        return cls(success=False, error=error)


class SavedProposal(BaseModel):
    """Identity of a persisted proposal."""

    id: str
    proposal_number: str = Field(..., alias="proposalNumber")

    class Config:
        populate_by_name = True


# =============================================================================
# SAVED PROPOSAL MANAGEMENT
# =============================================================================


class ProposalStatus(str, Enum):
    """Lifecycle state of a saved proposal."""

    DRAFT = "draft"
    SENT = "sent"
    VIEWED = "viewed"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"


class ProposalSortField(str, Enum):
    CREATED_AT = "createdAt"
    UPDATED_AT = "updatedAt"
    TOTAL_PRICE = "totalPrice"
    STATUS = "status"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class ProposalListQuery(BaseModel):
    """Filters, sorting and pagination for listing saved proposals."""

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)
    customer_id: Optional[str] = Field(default=None, min_length=1, alias="customerId")
    status: Optional[ProposalStatus] = None
    sort_by: ProposalSortField = Field(default=ProposalSortField.CREATED_AT, alias="sortBy")
    sort_order: SortOrder = Field(default=SortOrder.DESC, alias="sortOrder")

    class Config:
        populate_by_name = True
        frozen = True

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class ProposalUpdate(BaseModel):
    """Editable fields of a saved proposal. Only fields present are changed."""

    status: Optional[ProposalStatus] = None
    title: Optional[str] = Field(default=None, min_length=1)

    # Pricing adjustments
    discount_amount: Optional[float] = Field(default=None, ge=0, alias="discountAmount")
    discount_reason: Optional[str] = Field(default=None, alias="discountReason")

    # Notes
    customer_notes: Optional[str] = Field(default=None, alias="customerNotes")
    internal_notes: Optional[str] = Field(default=None, alias="internalNotes")

    # Content overrides
    executive_summary: Optional[str] = Field(default=None, alias="executiveSummary")
    scope_details: Optional[str] = Field(default=None, alias="scopeDetails")
    value_proposition: Optional[str] = Field(default=None, alias="valueProposition")
    terms_and_conditions: Optional[str] = Field(default=None, alias="termsAndConditions")

    # Dates
    valid_until: Optional[datetime] = Field(default=None, alias="validUntil")
    estimated_start_date: Optional[datetime] = Field(default=None, alias="estimatedStartDate")
    estimated_duration: Optional[int] = Field(default=None, gt=0, alias="estimatedDuration", description="Days")

    # Signature
    signature_data: Optional[str] = Field(default=None, alias="signatureData")
    signed_by_name: Optional[str] = Field(default=None, alias="signedByName")
    signed_by_email: Optional[str] = Field(
        default=None,
        alias="signedByEmail",
        pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
    )

    class Config:
        populate_by_name = True
        use_enum_values = True
        frozen = True
