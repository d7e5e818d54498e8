"""Pricing Pydantic models for the proposal engine.

This module defines the reference data shapes (materials, regional pricing,
labor rates) and the per-run pricing outputs (breakdowns, tiered options,
line items).
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


# =============================================================================
# ENUMS
# =============================================================================


class MaterialGrade(str, Enum):
    """Material tier, cheapest first."""

    ECONOMY = "economy"
    STANDARD = "standard"
    PREMIUM = "premium"
    LUXURY = "luxury"


# Fixed ladder order used for tiered pricing
GRADE_ORDER = (
    MaterialGrade.ECONOMY,
    MaterialGrade.STANDARD,
    MaterialGrade.PREMIUM,
    MaterialGrade.LUXURY,
)


class LineItemCategory(str, Enum):
    """Line item grouping shown on the proposal."""

    MATERIALS = "materials"
    LABOR = "labor"
    PERMIT = "permit"
    DISPOSAL = "disposal"
    MISC = "misc"


# =============================================================================
# REFERENCE DATA MODELS
# =============================================================================


class MaterialOption(BaseModel):
    """A roofing product in the material catalog."""

    id: str = Field(..., description="Catalog ID (e.g., 'arch-standard')")
    name: str
    grade: MaterialGrade
    brand: str
    description: str
    price_per_square: float = Field(..., gt=0, alias="pricePerSquare", description="Material price per roofing square ($)")
    warranty_years: int = Field(..., ge=0, alias="warrantyYears")
    features: List[str] = Field(default_factory=list)

    class Config:
        populate_by_name = True
        frozen = True


class RegionalPricing(BaseModel):
    """State-level labor, permit and tax profile."""

    state: str = Field(..., description="Two-letter state code or 'DEFAULT'")
    labor_rate_multiplier: float = Field(..., gt=0, alias="laborRateMultiplier")
    permit_fee_base: float = Field(..., ge=0, alias="permitFeeBase", description="Base permit fee ($)")
    tax_rate: float = Field(..., ge=0, le=0.2, alias="taxRate")
    avg_property_value: float = Field(default=0.0, ge=0, alias="avgPropertyValue")

    class Config:
        populate_by_name = True
        frozen = True


class LaborRates(BaseModel):
    """Per-square labor rates before multipliers."""

    base_rate_per_square: float = Field(..., ge=0, alias="baseRatePerSquare")
    tear_off_per_square: float = Field(..., ge=0, alias="tearOffPerSquare")
    disposal_per_square: float = Field(..., ge=0, alias="disposalPerSquare")

    class Config:
        populate_by_name = True
        frozen = True


class Discount(BaseModel):
    """A sales discount applied before tax."""

    amount: float = Field(..., ge=0, description="Discount amount ($)")
    reason: str = Field(..., min_length=1)

    class Config:
        frozen = True


# =============================================================================
# PRICING OUTPUT MODELS
# =============================================================================


class PricingBreakdown(BaseModel):
    """Itemized price for one material on one property.

    Monetary fields are whole dollars, rounded once when the breakdown is built.
    """

    roof_squares: int = Field(..., ge=1, alias="roofSquares")
    materials_cost: int = Field(..., alias="materialsCost")
    labor_cost: int = Field(..., alias="laborCost")
    tear_off_cost: int = Field(..., alias="tearOffCost")
    disposal_cost: int = Field(..., alias="disposalCost")
    permit_fees: int = Field(..., alias="permitFees")
    misc_fees: int = Field(..., alias="miscFees")
    subtotal: int = Field(..., description="Cost lines minus discount (may be negative)")
    discount_amount: int = Field(default=0, alias="discountAmount")
    discount_reason: Optional[str] = Field(default=None, alias="discountReason")
    tax_rate: float = Field(..., ge=0, alias="taxRate")
    tax_amount: int = Field(..., alias="taxAmount")
    total_price: int = Field(..., alias="totalPrice")

    class Config:
        populate_by_name = True
        frozen = True


class PricingOption(BaseModel):
    """One tier of the pricing ladder."""

    id: str = Field(..., description="Material catalog ID")
    name: str
    description: str
    material: MaterialOption
    breakdown: PricingBreakdown
    is_recommended: bool = Field(default=False, alias="isRecommended")
    savings_vs_higher: Optional[int] = Field(
        default=None,
        alias="savingsVsHigher",
        description="Next tier total minus this tier total; None on the top tier"
    )

    class Config:
        populate_by_name = True
        frozen = True


class LineItem(BaseModel):
    """A single row of the itemized proposal."""

    id: str
    category: LineItemCategory
    description: str
    quantity: int = Field(..., ge=0)
    unit: str
    unit_price: float = Field(..., alias="unitPrice")
    total_price: float = Field(..., alias="totalPrice")
    notes: Optional[str] = None

    class Config:
        populate_by_name = True
        frozen = True
