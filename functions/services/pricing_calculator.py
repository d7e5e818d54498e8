"""Pricing Calculator for the proposal engine.

Computes roof size, per-material cost breakdowns, the four-tier pricing
ladder and itemized line items for one property in one state.

All intermediate arithmetic is done on unrounded floats; monetary values
are rounded half-up only when a PricingBreakdown is built.
"""

import math
from typing import Dict, List, Optional

import structlog

from models.customer import PropertyData
from models.pricing import (
    GRADE_ORDER,
    Discount,
    LineItem,
    LineItemCategory,
    MaterialGrade,
    MaterialOption,
    PricingBreakdown,
    PricingOption,
)
from services.reference_data import DEFAULT_REFERENCE_DATA, PricingReferenceData
from utils.formatting import round_half_up

logger = structlog.get_logger()

SQUARE_FEET_PER_SQUARE = 100

UNDERLAYMENT_PRICE_PER_SQUARE = 15
ICE_WATER_PRICE_PER_SQUARE = 45
ICE_WATER_COVERAGE = 0.15
STARTER_RIDGE_SHARE = 0.6
FLASHING_SHARE = 0.4


class PricingCalculator:
    """Regional roofing price calculator.

    Usage:
        calculator = PricingCalculator("PA")
        options = calculator.generate_pricing_options(property_data)
        recommended = select_recommended_option(options, MaterialGrade.STANDARD)
        items = calculator.generate_line_items(
            property_data, recommended.material, recommended.breakdown
        )
    """

    def __init__(
        self,
        state: Optional[str],
        reference_data: PricingReferenceData = DEFAULT_REFERENCE_DATA
    ):
        self.reference_data = reference_data
        self.regional_pricing = reference_data.resolve_region(state)
        self.labor_rates = reference_data.labor_rates

    def calculate_roof_squares(self, property_data: PropertyData) -> int:
        """Calculate roofing squares (100 sq ft units) for a property.

        A measured roof_squares value wins. Otherwise the footprint
        (square footage over stories) is scaled by the pitch area factor.
        The result is never below one square.
        """
        if property_data.roof_squares and property_data.roof_squares > 0:
            return max(math.ceil(property_data.roof_squares), 1)

        sqft = property_data.square_footage or self.reference_data.default_square_footage
        stories = max(property_data.stories or 1, 1)
        footprint = sqft / stories

        pitch_factor = self.reference_data.area_pitch_factors.get(
            property_data.roof_pitch or "",
            self.reference_data.default_area_pitch_factor
        )
        roof_sqft = footprint * pitch_factor

        return max(math.ceil(roof_sqft / SQUARE_FEET_PER_SQUARE), 1)

    def get_labor_multiplier(self, property_data: PropertyData) -> float:
        """Pitch difficulty x stories difficulty x regional labor rate."""
        pitch_mult = self.reference_data.labor_pitch_multipliers.get(
            property_data.roof_pitch or "",
            self.reference_data.default_labor_pitch_multiplier
        )
        stories_mult = self.reference_data.stories_multipliers.get(
            property_data.stories or 1,
            self.reference_data.default_stories_multiplier
        )
        return pitch_mult * stories_mult * self.regional_pricing.labor_rate_multiplier

    def calculate_pricing(
        self,
        property_data: PropertyData,
        material: MaterialOption,
        discount: Optional[Discount] = None
    ) -> PricingBreakdown:
        """Calculate the full cost breakdown for one material.

        The discount is subtracted before tax and is not clamped, so a
        discount larger than the cost lines yields a negative subtotal.
        """
        roof_squares = self.calculate_roof_squares(property_data)
        labor_multiplier = self.get_labor_multiplier(property_data)

        materials_cost = roof_squares * material.price_per_square
        labor_cost = roof_squares * self.labor_rates.base_rate_per_square * labor_multiplier
        # Assumes one existing layer
        tear_off_cost = roof_squares * self.labor_rates.tear_off_per_square
        disposal_cost = roof_squares * self.labor_rates.disposal_per_square
        permit_fees = (
            self.regional_pricing.permit_fee_base
            + roof_squares * self.reference_data.permit_fee_per_square
        )
        # Ridge vents, flashing, starter strip
        misc_fees = materials_cost * self.reference_data.misc_fee_rate

        subtotal_before_discount = (
            materials_cost + labor_cost + tear_off_cost
            + disposal_cost + permit_fees + misc_fees
        )

        discount_amount = discount.amount if discount else 0.0
        subtotal = subtotal_before_discount - discount_amount

        tax_rate = self.regional_pricing.tax_rate
        tax_amount = subtotal * tax_rate
        total_price = subtotal + tax_amount

        return PricingBreakdown(
            roof_squares=roof_squares,
            materials_cost=round_half_up(materials_cost),
            labor_cost=round_half_up(labor_cost),
            tear_off_cost=round_half_up(tear_off_cost),
            disposal_cost=round_half_up(disposal_cost),
            permit_fees=round_half_up(permit_fees),
            misc_fees=round_half_up(misc_fees),
            subtotal=round_half_up(subtotal),
            discount_amount=round_half_up(discount_amount),
            discount_reason=discount.reason if discount else None,
            tax_rate=tax_rate,
            tax_amount=round_half_up(tax_amount),
            total_price=round_half_up(total_price)
        )

    def generate_pricing_options(
        self,
        property_data: PropertyData,
        discount: Optional[Discount] = None,
        preferred_grade: MaterialGrade = MaterialGrade.STANDARD
    ) -> List[PricingOption]:
        """Build one pricing option per grade, cheapest grade first.

        savings_vs_higher is the next tier's total minus this tier's total
        and is left as None on the top tier.
        """
        preferred_grade = MaterialGrade(preferred_grade or MaterialGrade.STANDARD)

        priced = []
        for grade in GRADE_ORDER:
            material = self.reference_data.material_for_grade(grade)
            if material is None:
                continue
            priced.append((grade, material, self.calculate_pricing(property_data, material, discount)))

        options = []
        for index, (grade, material, breakdown) in enumerate(priced):
            savings = None
            if index < len(priced) - 1:
                savings = priced[index + 1][2].total_price - breakdown.total_price
                if savings < 0:
                    logger.warning(
                        "pricing_tiers_not_monotonic",
                        grade=grade.value,
                        total_price=breakdown.total_price,
                        next_total_price=priced[index + 1][2].total_price
                    )

            options.append(PricingOption(
                id=material.id,
                name=material.name,
                description=material.description,
                material=material,
                breakdown=breakdown,
                is_recommended=grade == preferred_grade,
                savings_vs_higher=savings
            ))

        logger.debug(
            "pricing_options_generated",
            state=self.regional_pricing.state,
            roof_squares=priced[0][2].roof_squares if priced else None,
            option_count=len(options),
            preferred_grade=preferred_grade.value
        )

        return options

    def generate_line_items(
        self,
        property_data: PropertyData,
        material: MaterialOption,
        breakdown: PricingBreakdown
    ) -> List[LineItem]:
        """Expand a breakdown into the nine proposal line items.

        Per-square unit prices for labor lines are back-derived from the
        rounded breakdown, so the item totals match the breakdown within
        rounding tolerance rather than exactly.
        """
        squares = breakdown.roof_squares
        ice_water_squares = math.ceil(squares * ICE_WATER_COVERAGE)
        starter_ridge = round_half_up(breakdown.misc_fees * STARTER_RIDGE_SHARE)
        flashing = round_half_up(breakdown.misc_fees * FLASHING_SHARE)

        return [
            LineItem(
                id=f"material-{material.id}",
                category=LineItemCategory.MATERIALS,
                description=f"{material.brand} {material.name}",
                quantity=squares,
                unit="squares",
                unit_price=material.price_per_square,
                total_price=breakdown.materials_cost,
                notes=f"{material.warranty_years}-year warranty"
            ),
            LineItem(
                id="underlayment",
                category=LineItemCategory.MATERIALS,
                description="Synthetic Underlayment",
                quantity=squares,
                unit="squares",
                unit_price=UNDERLAYMENT_PRICE_PER_SQUARE,
                total_price=squares * UNDERLAYMENT_PRICE_PER_SQUARE
            ),
            LineItem(
                id="ice-water",
                category=LineItemCategory.MATERIALS,
                description="Ice & Water Shield (eaves, valleys)",
                quantity=ice_water_squares,
                unit="squares",
                unit_price=ICE_WATER_PRICE_PER_SQUARE,
                total_price=ice_water_squares * ICE_WATER_PRICE_PER_SQUARE
            ),
            LineItem(
                id="starter-ridge",
                category=LineItemCategory.MATERIALS,
                description="Starter Strip & Ridge Cap Shingles",
                quantity=1,
                unit="lot",
                unit_price=starter_ridge,
                total_price=starter_ridge
            ),
            LineItem(
                id="flashing",
                category=LineItemCategory.MATERIALS,
                description="Drip Edge, Step & Counter Flashing",
                quantity=1,
                unit="lot",
                unit_price=flashing,
                total_price=flashing
            ),
            LineItem(
                id="labor-install",
                category=LineItemCategory.LABOR,
                description="Professional Roof Installation",
                quantity=squares,
                unit="squares",
                unit_price=round_half_up(breakdown.labor_cost / squares),
                total_price=breakdown.labor_cost,
                notes=(
                    f"Includes {property_data.roof_pitch} pitch adjustment"
                    if property_data.roof_pitch else None
                )
            ),
            LineItem(
                id="labor-tearoff",
                category=LineItemCategory.LABOR,
                description="Existing Roof Tear-off",
                quantity=squares,
                unit="squares",
                unit_price=round_half_up(breakdown.tear_off_cost / squares),
                total_price=breakdown.tear_off_cost
            ),
            LineItem(
                id="disposal",
                category=LineItemCategory.DISPOSAL,
                description="Debris Removal & Disposal",
                quantity=squares,
                unit="squares",
                unit_price=round_half_up(breakdown.disposal_cost / squares),
                total_price=breakdown.disposal_cost
            ),
            LineItem(
                id="permit",
                category=LineItemCategory.PERMIT,
                description="Building Permit",
                quantity=1,
                unit="each",
                unit_price=breakdown.permit_fees,
                total_price=breakdown.permit_fees
            ),
        ]


def select_recommended_option(
    options: List[PricingOption],
    grade: Optional[MaterialGrade] = None
) -> PricingOption:
    """Pick the option for a grade, falling back to the standard tier.

    Raises:
        ValueError: If the ladder has neither the grade nor a standard option.
    """
    by_grade: Dict[MaterialGrade, PricingOption] = {
        MaterialGrade(option.material.grade): option for option in options
    }
    option = by_grade.get(MaterialGrade(grade or MaterialGrade.STANDARD))
    if option is None:
        option = by_grade.get(MaterialGrade.STANDARD)
    if option is None:
        raise ValueError("Pricing ladder has no standard option")
    return option
