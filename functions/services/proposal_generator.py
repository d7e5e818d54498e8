"""Proposal generator for the Guardian proposal engine.

Runs the generation pipeline for one customer:

    aggregate -> assess damage -> price the grade ladder -> line items
    -> content -> GeneratedProposal

and persists finished proposals as flat Firestore records.
"""

import json
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import structlog

from config.errors import CustomerNotFoundError
from config.settings import settings
from models.customer import PropertyData
from models.pricing import MaterialGrade
from models.proposal import (
    DamageAssessment,
    GeneratedProposal,
    ProposalGenerationRequest,
    ProposalGenerationResult,
    SavedProposal,
    SourceDataSnapshot,
)
from services.content_generator import ContentGenerator, ProposalContext
from services.damage_assessor import assess_damage
from services.data_aggregator import DataAggregator
from services.firestore_service import FirestoreService
from services.pricing_calculator import PricingCalculator, select_recommended_option
from services.reference_data import DEFAULT_REFERENCE_DATA, PricingReferenceData
from utils.proposal_logger import (
    log_generation_complete,
    log_generation_failed,
    log_generation_start,
)

logger = structlog.get_logger()

DATA_VERSION = "1.0"
HIGH_VALUE_PROPERTY_THRESHOLD = 500_000
PROPOSAL_NUMBER_PREFIX = "PROP"


def resolve_material_grade(
    requested: Optional[MaterialGrade],
    damage: DamageAssessment,
    property_data: PropertyData
) -> MaterialGrade:
    """Pick the grade to recommend.

    An explicit request wins. Otherwise severe damage or a high-value
    property recommends premium, and everything else standard.
    """
    if requested:
        return MaterialGrade(requested)
    if damage.damage_severity == "severe":
        return MaterialGrade.PREMIUM
    if (property_data.property_value or 0) > HIGH_VALUE_PROPERTY_THRESHOLD:
        return MaterialGrade.PREMIUM
    return MaterialGrade.STANDARD


def format_proposal_number(sequence: int) -> str:
    """PROP-000042 style proposal number."""
    return f"{PROPOSAL_NUMBER_PREFIX}-{sequence:06d}"


def _json_dump(value: Any) -> str:
    return json.dumps(value, default=str)


def build_proposal_record(
    proposal: GeneratedProposal,
    created_by_id: str,
    proposal_number: str,
    now: Optional[datetime] = None,
    valid_days: int = 30
) -> Dict[str, Any]:
    """Flatten a generated proposal into a Firestore proposal record.

    Scalars are copied onto the record; line items, pricing options and
    the source snapshot are stored as JSON strings.
    """
    now = now or datetime.now(timezone.utc)
    customer = proposal.customer
    prop = proposal.property
    insurance = proposal.insurance
    damage = proposal.damage_assessment
    content = proposal.ai_content
    recommended = proposal.recommended_option
    breakdown = recommended.breakdown
    material = recommended.material
    storm = proposal.weather_events[0] if proposal.weather_events else None

    return {
        "proposalNumber": proposal_number,
        "customerId": customer.id,
        "createdById": created_by_id,
        "title": f"Roof Replacement Proposal - {customer.full_name}",
        "status": "draft",
        "validUntil": now + timedelta(days=valid_days),
        "contentSource": proposal.content_source,

        # Property snapshot
        "propertyAddress": customer.address,
        "propertyCity": customer.city,
        "propertyState": customer.state,
        "propertyZip": customer.zip_code,
        "propertyType": prop.property_type,
        "roofType": prop.roof_type,
        "roofAge": prop.roof_age,
        "roofSquares": breakdown.roof_squares,
        "roofPitch": prop.roof_pitch,
        "stories": prop.stories,
        "squareFootage": prop.square_footage,
        "yearBuilt": prop.year_built,

        # Damage assessment
        "damageType": damage.damage_type,
        "damageSeverity": damage.damage_severity,
        "damageDescription": damage.damage_description,
        "stormEventId": storm.id if storm else None,
        "stormDate": storm.event_date if storm else None,
        "hailSize": storm.hail_size if storm else None,
        "windSpeed": storm.wind_speed if storm else None,

        # Scope
        "scopeSummary": content.scope_of_work,
        "scopeDetails": content.scope_details,
        "lineItems": _json_dump(
            [item.model_dump(by_alias=True, mode="json") for item in proposal.line_items]
        ),

        # Materials
        "primaryMaterial": f"{material.brand} {material.name}",
        "materialGrade": material.grade.value,
        "materialWarranty": f"{material.warranty_years} years",

        # Pricing
        "materialsCost": breakdown.materials_cost,
        "laborCost": breakdown.labor_cost,
        "permitFees": breakdown.permit_fees,
        "disposalFees": breakdown.disposal_cost,
        "miscFees": breakdown.misc_fees,
        "subtotal": breakdown.subtotal,
        "discountAmount": breakdown.discount_amount,
        "discountReason": breakdown.discount_reason,
        "taxRate": breakdown.tax_rate,
        "taxAmount": breakdown.tax_amount,
        "totalPrice": breakdown.total_price,
        "pricingOptions": _json_dump(
            [option.model_dump(by_alias=True, mode="json") for option in proposal.pricing_options]
        ),

        # Insurance
        "isInsuranceClaim": storm is not None,
        "insuranceCarrier": insurance.carrier,
        "policyNumber": insurance.policy_number,
        "deductible": insurance.deductible,
        "insuranceNotes": content.insurance_notes,

        # Narrative content
        "executiveSummary": content.executive_summary,
        "valueProposition": content.value_proposition,
        "warrantyDetails": content.warranty_details,
        "termsAndConditions": content.terms_and_conditions,
        "callToAction": content.call_to_action,

        "sourceDataSnapshot": _json_dump(
            proposal.source_data_snapshot.model_dump(by_alias=True, mode="json")
        ),
    }


class ProposalGenerator:
    """Generates and saves roofing proposals.

    Usage:
        generator = ProposalGenerator(llm_service=LLMService())
        result = await generator.generate_proposal(request)
        if result.success:
            saved = await generator.save_proposal(result.proposal, request.created_by_id)
    """

    def __init__(
        self,
        firestore_service: Optional[FirestoreService] = None,
        data_aggregator: Optional[DataAggregator] = None,
        content_generator: Optional[ContentGenerator] = None,
        reference_data: PricingReferenceData = DEFAULT_REFERENCE_DATA,
        llm_service=None
    ):
        self.firestore = firestore_service or FirestoreService()
        self.aggregator = data_aggregator or DataAggregator(self.firestore)
        self.content_generator = content_generator or ContentGenerator(llm_service=llm_service)
        self.reference_data = reference_data

    async def generate_proposal(self, request: ProposalGenerationRequest) -> ProposalGenerationResult:
        """Generate a complete proposal for a customer.

        Never raises: failures come back as an unsuccessful result.
        """
        start_time = time.time()
        log_generation_start(
            request.customer_id,
            request.material_grade.value if request.material_grade else None
        )

        try:
            proposal = await self._build_proposal(request)
        except CustomerNotFoundError as e:
            log_generation_failed(request.customer_id, e.message)
            return ProposalGenerationResult.failed(e.message)
        except Exception as e:
            logger.exception("proposal_generation_error", customer_id=request.customer_id)
            message = getattr(e, "message", None) or str(e) or "Unknown error occurred"
            log_generation_failed(request.customer_id, message)
            return ProposalGenerationResult.failed(message)

        log_generation_complete(
            customer_id=request.customer_id,
            recommended_grade=proposal.recommended_option.material.grade.value,
            total_price=proposal.recommended_option.breakdown.total_price,
            content_source=proposal.content_source,
            duration_ms=int((time.time() - start_time) * 1000)
        )

        return ProposalGenerationResult.ok(proposal)

    async def _build_proposal(self, request: ProposalGenerationRequest) -> GeneratedProposal:
        bundle = await self.aggregator.aggregate(request.customer_id)
        if bundle is None:
            raise CustomerNotFoundError(request.customer_id)

        calculator = PricingCalculator(bundle.customer.state, self.reference_data)

        damage = assess_damage(bundle.weather_events, bundle.property, bundle.intel_items)

        grade = resolve_material_grade(request.material_grade, damage, bundle.property)

        pricing_options = calculator.generate_pricing_options(
            bundle.property,
            request.custom_discount,
            grade
        )
        recommended = select_recommended_option(pricing_options, grade)

        line_items = calculator.generate_line_items(
            bundle.property,
            recommended.material,
            recommended.breakdown
        )

        context = ProposalContext(
            customer=bundle.customer,
            property=bundle.property,
            insurance=bundle.insurance,
            damage=damage,
            recommended_option=recommended,
            weather_events=tuple(bundle.weather_events)
        )
        content, source = await self.content_generator.resolve(context)

        snapshot = SourceDataSnapshot(
            customer_id=bundle.customer.id,
            customer_name=bundle.customer.full_name,
            property_address=bundle.customer.full_address,
            weather_events_count=len(bundle.weather_events),
            intel_items_count=len(bundle.intel_items),
            interactions_count=len(bundle.interactions),
            generated_at=datetime.now(timezone.utc),
            data_version=DATA_VERSION
        )

        return GeneratedProposal(
            customer=bundle.customer,
            property=bundle.property,
            insurance=bundle.insurance,
            weather_events=bundle.weather_events,
            damage_assessment=damage,
            pricing_options=pricing_options,
            recommended_option=recommended,
            line_items=line_items,
            ai_content=content,
            content_source=source,
            source_data_snapshot=snapshot
        )

    async def save_proposal(self, proposal: GeneratedProposal, created_by_id: str) -> SavedProposal:
        """Persist a generated proposal as a draft.

        Raises:
            ProposalEngineError: If the counter or the write fails.
        """
        sequence = await self.firestore.next_proposal_sequence()
        proposal_number = format_proposal_number(sequence)

        record = build_proposal_record(
            proposal,
            created_by_id,
            proposal_number,
            valid_days=settings.proposal_valid_days
        )
        proposal_id = await self.firestore.create_proposal(record)

        logger.info(
            "proposal_saved",
            proposal_id=proposal_id,
            proposal_number=proposal_number,
            customer_id=proposal.customer.id,
            created_by_id=created_by_id
        )

        return SavedProposal(id=proposal_id, proposal_number=proposal_number)
