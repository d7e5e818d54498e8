"""Pricing reference data for the proposal engine.

Static catalog of roofing materials, state pricing profiles and the
multiplier tables used by the pricing calculator. Everything here is
immutable and bundled into a PricingReferenceData value that is passed
into PricingCalculator, so tests can inject their own tables.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

import structlog

from models.pricing import (
    LaborRates,
    MaterialGrade,
    MaterialOption,
    RegionalPricing,
)

logger = structlog.get_logger()


# =============================================================================
# REGIONAL PRICING
# =============================================================================

REGIONAL_PRICING: Mapping[str, RegionalPricing] = MappingProxyType({
    "PA": RegionalPricing(
        state="PA",
        labor_rate_multiplier=1.0,
        permit_fee_base=150,
        tax_rate=0.06,
        avg_property_value=280000
    ),
    "NJ": RegionalPricing(
        state="NJ",
        labor_rate_multiplier=1.15,
        permit_fee_base=200,
        tax_rate=0.06625,
        avg_property_value=350000
    ),
    "DE": RegionalPricing(
        state="DE",
        labor_rate_multiplier=1.0,
        permit_fee_base=125,
        tax_rate=0.0,
        avg_property_value=290000
    ),
    "MD": RegionalPricing(
        state="MD",
        labor_rate_multiplier=1.05,
        permit_fee_base=175,
        tax_rate=0.06,
        avg_property_value=320000
    ),
    "VA": RegionalPricing(
        state="VA",
        labor_rate_multiplier=0.95,
        permit_fee_base=150,
        tax_rate=0.053,
        avg_property_value=310000
    ),
    "NY": RegionalPricing(
        state="NY",
        labor_rate_multiplier=1.25,
        permit_fee_base=250,
        tax_rate=0.08,
        avg_property_value=400000
    ),
})

# Used for any state outside the service area
DEFAULT_REGIONAL_PRICING = RegionalPricing(
    state="DEFAULT",
    labor_rate_multiplier=1.0,
    permit_fee_base=150,
    tax_rate=0.06,
    avg_property_value=300000
)


# =============================================================================
# MATERIAL CATALOG
# =============================================================================

MATERIAL_OPTIONS: Tuple[MaterialOption, ...] = (
    MaterialOption(
        id="3-tab-economy",
        name="3-Tab Shingle",
        grade=MaterialGrade.ECONOMY,
        brand="GAF Royal Sovereign",
        description="Basic 3-tab asphalt shingle, reliable protection at the lowest cost",
        price_per_square=85,
        warranty_years=25,
        features=["Basic wind resistance", "Standard colors", "25-year warranty"]
    ),
    MaterialOption(
        id="arch-standard",
        name="Architectural Shingle - Standard",
        grade=MaterialGrade.STANDARD,
        brand="GAF Timberline HDZ",
        description="Popular dimensional shingle with enhanced durability and curb appeal",
        price_per_square=125,
        warranty_years=30,
        features=["130 mph wind warranty", "StainGuard protection", "Layered design", "30-year warranty"]
    ),
    MaterialOption(
        id="arch-premium",
        name="Architectural Shingle - Premium",
        grade=MaterialGrade.PREMIUM,
        brand="CertainTeed Landmark Pro",
        description="High-performance shingle with superior protection and aesthetics",
        price_per_square=165,
        warranty_years=50,
        features=["Max defense warranty", "Impact resistant (Class 4)", "Premium colors", "50-year warranty"]
    ),
    MaterialOption(
        id="designer-luxury",
        name="Designer Shingle",
        grade=MaterialGrade.LUXURY,
        brand="GAF Grand Sequoia",
        description="Premium designer shingle mimicking wood shake appearance",
        price_per_square=225,
        warranty_years=50,
        features=["Wood shake appearance", "Lifetime warranty", "Max wind resistance", "Artisan colors"]
    ),
    # Second luxury product; the tier ladder always takes the first entry of a grade
    MaterialOption(
        id="metal-standing-seam",
        name="Standing Seam Metal",
        grade=MaterialGrade.LUXURY,
        brand="Englert",
        description="Premium metal roofing with exceptional longevity and energy efficiency",
        price_per_square=450,
        warranty_years=50,
        features=["50+ year lifespan", "Energy efficient", "Fire resistant", "Low maintenance"]
    ),
)


# =============================================================================
# LABOR RATES AND MULTIPLIERS
# =============================================================================

BASE_LABOR_RATES = LaborRates(
    base_rate_per_square=150,
    tear_off_per_square=75,  # one existing layer
    disposal_per_square=35
)

# Roof area per unit of footprint, by pitch (used to estimate squares)
AREA_PITCH_FACTORS: Mapping[str, float] = MappingProxyType({
    "4/12": 1.05,
    "5/12": 1.08,
    "6/12": 1.12,
    "7/12": 1.16,
    "8/12": 1.20,
    "9/12": 1.25,
    "10/12": 1.30,
    "12/12": 1.41,
})
DEFAULT_AREA_PITCH_FACTOR = 1.15

# Labor difficulty by pitch (steeper = more expensive)
LABOR_PITCH_MULTIPLIERS: Mapping[str, float] = MappingProxyType({
    "4/12": 1.0,
    "5/12": 1.0,
    "6/12": 1.05,
    "7/12": 1.1,
    "8/12": 1.15,
    "9/12": 1.2,
    "10/12": 1.25,
    "11/12": 1.3,
    "12/12": 1.35,
    "steep": 1.4,
})
DEFAULT_LABOR_PITCH_MULTIPLIER = 1.1

# Labor difficulty by number of stories
STORIES_MULTIPLIERS: Mapping[int, float] = MappingProxyType({
    1: 1.0,
    2: 1.1,
    3: 1.25,
})
DEFAULT_STORIES_MULTIPLIER = 1.0


# =============================================================================
# REFERENCE DATA BUNDLE
# =============================================================================


@dataclass(frozen=True)
class PricingReferenceData:
    """Read-only tables consumed by PricingCalculator.

    The area pitch factors and the labor pitch multipliers are separate
    tables: the first converts footprint to roof area, the second scales
    installation labor.
    """

    materials: Tuple[MaterialOption, ...] = MATERIAL_OPTIONS
    regional_pricing: Mapping[str, RegionalPricing] = field(default_factory=lambda: REGIONAL_PRICING)
    default_regional_pricing: RegionalPricing = DEFAULT_REGIONAL_PRICING
    labor_rates: LaborRates = BASE_LABOR_RATES
    area_pitch_factors: Mapping[str, float] = field(default_factory=lambda: AREA_PITCH_FACTORS)
    default_area_pitch_factor: float = DEFAULT_AREA_PITCH_FACTOR
    labor_pitch_multipliers: Mapping[str, float] = field(default_factory=lambda: LABOR_PITCH_MULTIPLIERS)
    default_labor_pitch_multiplier: float = DEFAULT_LABOR_PITCH_MULTIPLIER
    stories_multipliers: Mapping[int, float] = field(default_factory=lambda: STORIES_MULTIPLIERS)
    default_stories_multiplier: float = DEFAULT_STORIES_MULTIPLIER
    misc_fee_rate: float = 0.08
    permit_fee_per_square: float = 2.0
    default_square_footage: float = 2000.0

    def resolve_region(self, state: Optional[str]) -> RegionalPricing:
        """Get the pricing profile for a state, DEFAULT when unknown."""
        regional = self.regional_pricing.get((state or "").upper())
        if regional is None:
            logger.debug("regional_pricing_default_used", state=state)
            return self.default_regional_pricing
        return regional

    def material_for_grade(self, grade: MaterialGrade) -> Optional[MaterialOption]:
        """First catalog material of a grade."""
        return next((m for m in self.materials if m.grade == grade), None)

    def material_by_id(self, material_id: str) -> Optional[MaterialOption]:
        return next((m for m in self.materials if m.id == material_id), None)


DEFAULT_REFERENCE_DATA = PricingReferenceData()


def get_material_by_grade(grade: MaterialGrade) -> MaterialOption:
    """Get the catalog material for a grade, the standard material if none exists."""
    return (
        DEFAULT_REFERENCE_DATA.material_for_grade(MaterialGrade(grade))
        or DEFAULT_REFERENCE_DATA.material_for_grade(MaterialGrade.STANDARD)
    )


def get_material_by_id(material_id: str) -> Optional[MaterialOption]:
    """Get a catalog material by ID."""
    return DEFAULT_REFERENCE_DATA.material_by_id(material_id)
