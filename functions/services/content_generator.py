"""Proposal content generation.

Narrative proposal prose comes from an ordered list of content strategies:
the AI writer first, the deterministic template writer as the guaranteed
fallback. ContentGenerator walks the list and returns the first success
together with the name of the strategy that produced it.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

import structlog

from config.errors import ContentGenerationError, ProposalEngineError
from models.customer import CustomerData, InsuranceData, PropertyData, WeatherEventData
from models.pricing import PricingOption
from models.proposal import AIGeneratedContent, ContentSource, DamageAssessment
from services.llm_service import LLMService
from utils.formatting import format_currency, format_event_date, format_number, round_half_up
from utils.proposal_logger import log_content_fallback

logger = structlog.get_logger()

COMPANY_NAME = "Guardian Roofing & Siding"
COMPANY_PHONE = "(215) 555-ROOF"

# Fields the AI writer fills in; terms and conditions are always the fixed block
AI_CONTENT_FIELDS = (
    "executiveSummary",
    "scopeOfWork",
    "scopeDetails",
    "valueProposition",
    "warrantyDetails",
    "insuranceNotes",
    "callToAction",
)

PROPOSAL_WRITER_SYSTEM_PROMPT = f"""You are a professional proposal writer for {COMPANY_NAME}, a trusted storm damage restoration company serving the Mid-Atlantic region.

Generate professional, persuasive proposal content that:
- Addresses the homeowner by name
- References specific property and damage details
- Emphasizes value and quality
- Builds trust and urgency appropriately
- Is warm but professional in tone

Respond with a JSON object containing these fields:
- executiveSummary: 2-3 paragraph summary for the customer
- scopeOfWork: Brief scope description (1-2 sentences)
- scopeDetails: Detailed scope in markdown format
- valueProposition: Why choose Guardian (3-4 bullet points)
- warrantyDetails: Warranty explanation
- insuranceNotes: Insurance-related guidance if applicable
- termsAndConditions: Leave empty; standard terms are attached separately
- callToAction: Compelling next step

Format the response as valid JSON only."""


TERMS_AND_CONDITIONS = """## Terms & Conditions

1. **Payment Terms**: 50% deposit due at signing, balance due upon completion.
2. **Project Timeline**: Work will commence within 2-3 weeks of signed agreement, weather permitting.
3. **Change Orders**: Any changes to the scope of work must be agreed upon in writing.
4. **Property Access**: Customer grants Guardian access to the property for the duration of the project.
5. **Permits**: Guardian will obtain all necessary permits. Permit fees are included in this proposal.
6. **Hidden Damage**: If hidden damage (such as rotted decking) is discovered during tear-off, customer will be notified and additional costs approved before proceeding.
7. **Warranty Claims**: All warranty claims must be submitted in writing within 30 days of discovering an issue.
8. **Cancellation**: Customer may cancel within 3 business days of signing for a full refund.

*Guardian Roofing & Siding, LLC - Licensed, Bonded & Insured*"""


def get_terms_and_conditions() -> str:
    """Standard terms attached to every proposal."""
    return TERMS_AND_CONDITIONS


@dataclass(frozen=True)
class ProposalContext:
    """Everything a content strategy may draw on."""

    customer: CustomerData
    property: PropertyData
    insurance: InsuranceData
    damage: DamageAssessment
    recommended_option: PricingOption
    weather_events: Tuple[WeatherEventData, ...] = ()

    @property
    def recent_event(self) -> Optional[WeatherEventData]:
        return self.weather_events[0] if self.weather_events else None


def build_ai_prompt(context: ProposalContext) -> str:
    """Build the user message describing the customer, damage and offer."""
    customer = context.customer
    prop = context.property
    insurance = context.insurance
    damage = context.damage
    option = context.recommended_option
    event = context.recent_event

    square_footage = (
        f"{round_half_up(prop.square_footage):,}" if prop.square_footage else "Approx. 2,000"
    )

    lines = [
        "Generate proposal content for:",
        "",
        "CUSTOMER:",
        f"- Name: {customer.full_name}",
        f"- Address: {customer.full_address}",
        "",
        "PROPERTY:",
        f"- Type: {prop.property_type or 'Single Family'}",
        f"- Year Built: {prop.year_built or 'Unknown'}",
        f"- Square Footage: {square_footage} sqft",
        f"- Roof Type: {prop.roof_type or 'Asphalt Shingle'}",
        f"- Roof Age: {prop.roof_age or 'Unknown'} years",
        f"- Roof Size: {option.breakdown.roof_squares} squares",
        "",
        "DAMAGE ASSESSMENT:",
        f"- Type: {damage.damage_type}",
        f"- Severity: {damage.damage_severity}",
        f"- Description: {damage.damage_description}",
        f"- Affected Areas: {', '.join(damage.affected_areas)}",
        f"- Urgency: {damage.urgency_level}",
        "",
    ]

    if event is not None:
        lines.extend([
            "STORM EVENT:",
            f"- Type: {event.event_type}",
            f"- Date: {format_event_date(event.event_date)}",
            f"- Severity: {event.severity}",
        ])
        if event.hail_size:
            lines.append(f"- Hail Size: {format_number(event.hail_size)}\"")
        if event.wind_speed:
            lines.append(f"- Wind Speed: {format_number(event.wind_speed)} mph")
        lines.append("")

    deductible = format_currency(insurance.deductible) if insurance.deductible else "Unknown"
    lines.extend([
        "INSURANCE:",
        f"- Carrier: {insurance.carrier or 'Unknown'}",
        f"- Deductible: {deductible}",
        f"- Recommendation: {damage.insurance_recommendation}",
        "",
        "PROPOSED SOLUTION:",
        f"- Material: {option.material.brand} {option.material.name}",
        f"- Warranty: {option.material.warranty_years} years",
        f"- Total Investment: {format_currency(option.breakdown.total_price)}",
        "",
        "Generate persuasive, professional proposal content.",
    ])

    return "\n".join(lines)


# =============================================================================
# STRATEGIES
# =============================================================================


class ContentStrategy(ABC):
    """A way of writing proposal prose."""

    name: ContentSource

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the strategy can be attempted right now."""

    @abstractmethod
    async def generate(self, context: ProposalContext) -> AIGeneratedContent:
        """Write the proposal content.

        Raises:
            ContentGenerationError: If no usable content was produced.
        """


class AIContentStrategy(ContentStrategy):
    """Writes proposal prose with the LLM."""

    name = ContentSource.AI

    def __init__(self, llm_service: Optional[LLMService] = None):
        self.llm = llm_service

    def is_available(self) -> bool:
        return self.llm is not None and self.llm.is_configured

    async def generate(self, context: ProposalContext) -> AIGeneratedContent:
        try:
            result = await self.llm.generate_json(
                PROPOSAL_WRITER_SYSTEM_PROMPT,
                build_ai_prompt(context)
            )
        except ProposalEngineError as e:
            raise ContentGenerationError(
                message=e.message,
                strategy=self.name.value,
                details={"code": e.code}
            )

        parsed = result.get("content")
        if not isinstance(parsed, dict):
            raise ContentGenerationError(
                message="AI response is not a JSON object",
                strategy=self.name.value,
                details={"type": type(parsed).__name__}
            )

        content = parse_ai_content(parsed)
        if not any(getattr(content, field) for field in (
            "executive_summary",
            "scope_of_work",
            "scope_details",
            "value_proposition",
            "warranty_details",
            "insurance_notes",
            "call_to_action",
        )):
            raise ContentGenerationError(
                message="AI response contained no proposal content",
                strategy=self.name.value
            )

        logger.info(
            "ai_content_generated",
            customer_id=context.customer.id,
            tokens_used=result.get("tokens_used", 0)
        )
        return content


def parse_ai_content(parsed: Dict[str, Any]) -> AIGeneratedContent:
    """Map the AI's camelCase JSON onto AIGeneratedContent.

    A list of strings (bullets) is joined one per line. Missing or other
    non-string fields become empty strings. Terms and conditions always
    come from the standard block.
    """
    values = {}
    for key in AI_CONTENT_FIELDS:
        values[key] = _content_text(parsed.get(key))
    values["termsAndConditions"] = get_terms_and_conditions()
    return AIGeneratedContent.model_validate(values)


def _content_text(value: Any) -> str:
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, list) and value and all(isinstance(item, str) for item in value):
        return "\n".join(item.strip() for item in value if item.strip())
    return ""


class TemplateContentStrategy(ContentStrategy):
    """Fills fixed prose blocks from the proposal context.

    Pure and deterministic; always available and never fails.
    """

    name = ContentSource.TEMPLATE

    def is_available(self) -> bool:
        return True

    async def generate(self, context: ProposalContext) -> AIGeneratedContent:
        return self.build(context)

    def build(self, context: ProposalContext) -> AIGeneratedContent:
        customer = context.customer
        insurance = context.insurance
        damage = context.damage
        material = context.recommended_option.material
        product = f"{material.brand} {material.name}"
        total = format_currency(context.recommended_option.breakdown.total_price)

        executive_summary = f"""Dear {customer.first_name},

Thank you for considering {COMPANY_NAME} for your roofing project. Following our assessment of your property at {customer.address}, we are pleased to present this comprehensive proposal for your roof replacement.

{damage.damage_description}

We recommend the {product} roofing system, which offers {material.warranty_years} years of protection and industry-leading durability. Our team of certified installers will ensure your new roof is installed to the highest standards, protecting your home for decades to come.

Your total investment for this project is {total}, which includes all materials, professional installation, permits, and debris removal."""

        scope_of_work = (
            f"Complete roof replacement with {product} shingles, including tear-off of "
            "existing roof, new underlayment, and all necessary flashing and ventilation."
        )

        scope_details = f"""## Scope of Work

### Preparation
- Protect landscaping, decks, and property with tarps and boards
- Set up safe debris chute system

### Tear-Off
- Remove all existing roofing materials down to the deck
- Inspect roof deck for damage or rot
- Replace any damaged decking (if needed, additional cost applies)

### Installation
- Install synthetic underlayment across entire roof surface
- Apply ice & water shield at eaves, valleys, and penetrations
- Install new drip edge at eaves and rakes
- Install {product} shingles per manufacturer specifications
- Install matching hip and ridge cap shingles
- Flash all penetrations, walls, and chimneys
- Install or replace roof vents as needed

### Cleanup
- Magnetic sweep of property for nails
- Complete debris removal and disposal
- Final inspection and walkthrough"""

        value_proposition = f"""## Why Choose Guardian?

- **Licensed & Insured**: Fully licensed in {customer.state} with comprehensive liability and workers' comp coverage
- **Manufacturer Certified**: GAF Master Elite and CertainTeed SELECT ShingleMaster contractor
- **Storm Damage Experts**: Specialized in insurance claim assistance with 95% approval rate
- **Warranty Protection**: {material.warranty_years}-year manufacturer warranty plus our 10-year workmanship guarantee
- **Local Team**: Serving the {customer.city} area for over 15 years with hundreds of 5-star reviews"""

        warranty_details = f"""## Warranty Coverage

### Manufacturer Warranty
{material.brand} provides a {material.warranty_years}-year limited warranty covering manufacturing defects in the shingle material. This warranty is transferable to new homeowners within the first 20 years.

### Guardian Workmanship Warranty
We stand behind our installation with a 10-year workmanship warranty covering any installation-related issues. If any problems arise due to our work, we'll fix them at no cost to you.

### What's Covered
- Shingle material defects
- Premature granule loss
- Wind damage (up to 130 mph for this product)
- Installation defects
- Flashing and seal failures"""

        call_to_action = f"""## Ready to Get Started?

Protect your home with a new roof from Guardian. To move forward:

1. **Review this proposal** and let us know if you have any questions
2. **Sign below** to authorize the work
3. **We'll schedule** your installation within 2-3 weeks

Questions? Call us at **{COMPANY_PHONE}** or reply to this proposal.

*This proposal is valid for 30 days from the date of issue.*"""

        return AIGeneratedContent(
            executive_summary=executive_summary,
            scope_of_work=scope_of_work,
            scope_details=scope_details,
            value_proposition=value_proposition,
            warranty_details=warranty_details,
            insurance_notes=self._insurance_notes(insurance, damage),
            terms_and_conditions=get_terms_and_conditions(),
            call_to_action=call_to_action
        )

    @staticmethod
    def _insurance_notes(insurance: InsuranceData, damage: DamageAssessment) -> str:
        if not insurance.carrier:
            return ""

        carrier_lines = [f"- Carrier: {insurance.carrier}"]
        if insurance.deductible:
            carrier_lines.append(f"- Deductible: {format_currency(insurance.deductible)}")
        carrier_info = "\n".join(carrier_lines)

        return f"""## Insurance Assistance

{damage.insurance_recommendation}

**Your Insurance Information:**
{carrier_info}

Guardian provides complimentary insurance claim assistance:
- We'll meet with your adjuster on-site
- Provide detailed documentation and photos
- Handle supplement requests if initial approval is insufficient
- Work directly with your insurance company throughout the process

*Note: Your out-of-pocket cost for an approved insurance claim is typically limited to your deductible.*"""


# =============================================================================
# RESOLVER
# =============================================================================


class ContentGenerator:
    """Resolves proposal content from an ordered list of strategies.

    Usage:
        generator = ContentGenerator(llm_service=LLMService())
        content, source = await generator.resolve(context)
    """

    def __init__(
        self,
        strategies: Optional[Sequence[ContentStrategy]] = None,
        llm_service: Optional[LLMService] = None
    ):
        if strategies is None:
            strategies = [AIContentStrategy(llm_service), TemplateContentStrategy()]
        self.strategies: List[ContentStrategy] = list(strategies)

    async def resolve(self, context: ProposalContext) -> Tuple[AIGeneratedContent, ContentSource]:
        """Return content from the first strategy that succeeds, and its name.

        Raises:
            ContentGenerationError: If every strategy was unavailable or failed.
        """
        for strategy in self.strategies:
            if not strategy.is_available():
                logger.debug("content_strategy_unavailable", strategy=strategy.name.value)
                continue

            try:
                content = await strategy.generate(context)
            except Exception as e:
                log_content_fallback(strategy.name.value, str(e))
                continue

            logger.info(
                "proposal_content_resolved",
                customer_id=context.customer.id,
                strategy=strategy.name.value
            )
            return content, strategy.name

        raise ContentGenerationError(
            message="No content strategy produced proposal content",
            strategy="none",
            details={"strategies": [s.name.value for s in self.strategies]}
        )

    async def generate(self, context: ProposalContext) -> AIGeneratedContent:
        content, _ = await self.resolve(context)
        return content
