"""Unit tests for proposal content generation."""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from config.errors import ContentGenerationError, ErrorCode, ProposalEngineError
from models.proposal import AIGeneratedContent, ContentSource
from services.content_generator import (
    AIContentStrategy,
    ContentGenerator,
    ContentStrategy,
    ProposalContext,
    TemplateContentStrategy,
    build_ai_prompt,
    get_terms_and_conditions,
    parse_ai_content,
)
from services.damage_assessor import assess_damage
from services.pricing_calculator import PricingCalculator, select_recommended_option
from tests.fixtures.mock_customer_data import (
    AI_CONTENT_RESPONSE,
    make_customer,
    make_insurance,
    make_intel_item,
    make_property,
    make_weather_event,
)


def make_context(insurance=None, weather_events=None, property_data=None) -> ProposalContext:
    customer = make_customer()
    property_data = property_data or make_property()
    events = [make_weather_event()] if weather_events is None else weather_events
    damage = assess_damage(events, property_data, [make_intel_item()])
    options = PricingCalculator(customer.state).generate_pricing_options(property_data)
    return ProposalContext(
        customer=customer,
        property=property_data,
        insurance=insurance or make_insurance(),
        damage=damage,
        recommended_option=select_recommended_option(options),
        weather_events=tuple(events)
    )


def make_llm(configured=True, response=None, error=None):
    llm = MagicMock()
    llm.is_configured = configured
    if error is not None:
        llm.generate_json = AsyncMock(side_effect=error)
    else:
        llm.generate_json = AsyncMock(return_value={"content": response, "tokens_used": 900})
    return llm


NARRATIVE_FIELDS = (
    "executive_summary",
    "scope_of_work",
    "scope_details",
    "value_proposition",
    "warranty_details",
    "insurance_notes",
    "terms_and_conditions",
    "call_to_action",
)


# =============================================================================
# TEMPLATE STRATEGY
# =============================================================================


class TestTemplateContentStrategy:
    """Tests for the deterministic template writer."""

    def test_all_fields_populated(self):
        content = TemplateContentStrategy().build(make_context())
        for field in NARRATIVE_FIELDS:
            assert getattr(content, field), field

    def test_personalized_prose(self):
        content = TemplateContentStrategy().build(make_context())
        assert content.executive_summary.startswith("Dear Jane,")
        assert "123 Main St" in content.executive_summary
        assert 'Hail damage from 1.25" hail event on 6/15/2026.' in content.executive_summary
        assert "$10,021" in content.executive_summary
        assert "GAF Timberline HDZ Architectural Shingle - Standard" in content.scope_of_work
        assert "Fully licensed in PA" in content.value_proposition
        assert "Serving the Philadelphia area" in content.value_proposition
        assert "30-year limited warranty" in content.warranty_details
        assert "(215) 555-ROOF" in content.call_to_action

    def test_insurance_notes_with_carrier(self):
        content = TemplateContentStrategy().build(make_context())
        assert content.insurance_notes.startswith("## Insurance Assistance")
        assert "- Carrier: State Farm" in content.insurance_notes
        assert "- Deductible: $1,000" in content.insurance_notes
        assert "filing a claim for the 6/15/2026 hail event" in content.insurance_notes

    def test_insurance_notes_without_deductible(self):
        context = make_context(insurance=make_insurance(deductible=None))
        content = TemplateContentStrategy().build(context)
        assert "Deductible" not in content.insurance_notes.split("Guardian provides")[0]

    def test_no_carrier_means_empty_insurance_notes(self):
        context = make_context(insurance=make_insurance(carrier=None))
        content = TemplateContentStrategy().build(context)

        assert content.insurance_notes == ""
        for field in NARRATIVE_FIELDS:
            if field != "insurance_notes":
                assert getattr(content, field), field

    def test_terms_are_standard(self):
        content = TemplateContentStrategy().build(make_context())
        assert content.terms_and_conditions == get_terms_and_conditions()
        assert content.terms_and_conditions.startswith("## Terms & Conditions")

    def test_deterministic(self):
        strategy = TemplateContentStrategy()
        assert strategy.build(make_context()) == strategy.build(make_context())

    @pytest.mark.asyncio
    async def test_generate_matches_build(self):
        strategy = TemplateContentStrategy()
        context = make_context()
        assert strategy.is_available()
        assert await strategy.generate(context) == strategy.build(context)


# =============================================================================
# AI STRATEGY
# =============================================================================


class TestAIPrompt:
    """Tests for the AI user prompt."""

    def test_prompt_sections(self):
        prompt = build_ai_prompt(make_context())
        assert "- Name: Jane Doe" in prompt
        assert "- Address: 123 Main St, Philadelphia, PA 19103" in prompt
        assert "- Square Footage: 2,000 sqft" in prompt
        assert "- Roof Size: 23 squares" in prompt
        assert "STORM EVENT:" in prompt
        assert '- Hail Size: 1.25"' in prompt
        assert "- Deductible: $1,000" in prompt
        assert "- Total Investment: $10,021" in prompt

    def test_prompt_without_storm_or_unknowns(self):
        context = make_context(
            insurance=make_insurance(carrier=None, deductible=None),
            weather_events=[],
            property_data=make_property(year_built=None, square_footage=None, roof_age=None)
        )
        prompt = build_ai_prompt(context)
        assert "STORM EVENT:" not in prompt
        assert "- Carrier: Unknown" in prompt
        assert "- Deductible: Unknown" in prompt
        assert "- Year Built: Unknown" in prompt
        assert "- Square Footage: Approx. 2,000 sqft" in prompt


class TestAIContentStrategy:
    """Tests for the AI writer."""

    def test_availability(self):
        assert AIContentStrategy(make_llm(configured=True)).is_available()
        assert not AIContentStrategy(make_llm(configured=False)).is_available()
        assert not AIContentStrategy(None).is_available()

    @pytest.mark.asyncio
    async def test_generate(self):
        llm = make_llm(response=dict(AI_CONTENT_RESPONSE))
        content = await AIContentStrategy(llm).generate(make_context())

        assert content.executive_summary == AI_CONTENT_RESPONSE["executiveSummary"]
        assert content.call_to_action == AI_CONTENT_RESPONSE["callToAction"]
        system_prompt, user_message = llm.generate_json.call_args.args
        assert "Guardian Roofing & Siding" in system_prompt
        assert "- Name: Jane Doe" in user_message

    @pytest.mark.asyncio
    async def test_terms_always_standard(self):
        llm = make_llm(response=dict(AI_CONTENT_RESPONSE))
        content = await AIContentStrategy(llm).generate(make_context())
        assert content.terms_and_conditions == get_terms_and_conditions()

    def test_missing_keys_become_empty(self):
        content = parse_ai_content({"executiveSummary": "Hi", "scopeOfWork": 42})
        assert content.executive_summary == "Hi"
        assert content.scope_of_work == ""
        assert content.insurance_notes == ""

    def test_bullet_lists_are_joined(self):
        content = parse_ai_content({
            "valueProposition": ["- Licensed in PA", "  ", "- 10-year workmanship warranty"],
            "scopeDetails": ["Tear-off", 3],
        })
        assert content.value_proposition == "- Licensed in PA\n- 10-year workmanship warranty"
        assert content.scope_details == ""

    @pytest.mark.asyncio
    async def test_llm_error_raises_content_error(self):
        llm = make_llm(error=ProposalEngineError(code=ErrorCode.LLM_ERROR, message="LLM did not return valid JSON"))

        with pytest.raises(ContentGenerationError) as exc_info:
            await AIContentStrategy(llm).generate(make_context())

        assert exc_info.value.strategy == "ai"
        assert exc_info.value.details["code"] == ErrorCode.LLM_ERROR

    @pytest.mark.asyncio
    async def test_non_object_json_raises(self):
        llm = make_llm(response=["executiveSummary", "scopeOfWork"])

        with pytest.raises(ContentGenerationError):
            await AIContentStrategy(llm).generate(make_context())

    @pytest.mark.asyncio
    async def test_empty_content_raises(self):
        llm = make_llm(response={"executiveSummary": "  ", "termsAndConditions": "ignored"})

        with pytest.raises(ContentGenerationError):
            await AIContentStrategy(llm).generate(make_context())


# =============================================================================
# RESOLVER
# =============================================================================


class TestContentGenerator:
    """Tests for strategy resolution."""

    @pytest.mark.asyncio
    async def test_ai_used_when_available(self):
        generator = ContentGenerator(llm_service=make_llm(response=dict(AI_CONTENT_RESPONSE)))

        content, source = await generator.resolve(make_context())

        assert source == ContentSource.AI
        assert content.executive_summary == AI_CONTENT_RESPONSE["executiveSummary"]

    @pytest.mark.asyncio
    async def test_ai_unavailable_uses_template(self):
        llm = make_llm(configured=False)
        generator = ContentGenerator(llm_service=llm)

        content, source = await generator.resolve(make_context(insurance=make_insurance(carrier=None)))

        assert source == ContentSource.TEMPLATE
        assert content.insurance_notes == ""
        llm.generate_json.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_llm_uses_template(self):
        content, source = await ContentGenerator().resolve(make_context())
        assert source == ContentSource.TEMPLATE
        assert content.executive_summary.startswith("Dear Jane,")

    @pytest.mark.asyncio
    async def test_ai_failure_falls_back_to_template(self):
        llm = make_llm(error=ProposalEngineError(code=ErrorCode.LLM_RATE_LIMIT, message="OpenAI rate limit exceeded"))
        generator = ContentGenerator(llm_service=llm)
        context = make_context()

        with patch("services.content_generator.log_content_fallback") as log_fallback:
            content, source = await generator.resolve(context)

        assert source == ContentSource.TEMPLATE
        assert content == TemplateContentStrategy().build(context)
        log_fallback.assert_called_once()
        assert log_fallback.call_args.args[0] == "ai"

    @pytest.mark.asyncio
    async def test_unexpected_strategy_error_falls_through(self):
        llm = make_llm(error=TimeoutError("read timed out"))
        generator = ContentGenerator(llm_service=llm)

        with patch("services.content_generator.log_content_fallback"):
            _, source = await generator.resolve(make_context())

        assert source == ContentSource.TEMPLATE

    @pytest.mark.asyncio
    async def test_custom_strategy_order(self):
        class CannedStrategy(ContentStrategy):
            name = ContentSource.AI

            def is_available(self):
                return True

            async def generate(self, context):
                return AIGeneratedContent(executive_summary="Canned")

        generator = ContentGenerator([TemplateContentStrategy(), CannedStrategy()])
        content, source = await generator.resolve(make_context())

        assert source == ContentSource.TEMPLATE
        assert content.executive_summary.startswith("Dear Jane,")

    @pytest.mark.asyncio
    async def test_all_strategies_unavailable_raises(self):
        generator = ContentGenerator([AIContentStrategy(None)])

        with pytest.raises(ContentGenerationError):
            await generator.resolve(make_context())

    @pytest.mark.asyncio
    async def test_generate_returns_content_only(self):
        content = await ContentGenerator().generate(make_context())
        assert isinstance(content, AIGeneratedContent)
