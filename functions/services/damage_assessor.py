"""Damage assessment for roofing proposals.

Derives damage type, severity, urgency and the recommended next steps
from a customer's weather history, property details and field intel.
Pure and deterministic: no I/O and no AI involvement.
"""

from typing import List, Optional, Sequence

import structlog

from models.customer import IntelItemData, PropertyData, WeatherEventData
from models.proposal import DamageAssessment, UrgencyLevel
from utils.formatting import format_event_date, format_number

logger = structlog.get_logger()

AGING_ROOF_YEARS = 15
END_OF_LIFE_ROOF_YEARS = 20
MAX_INTEL_OBSERVATIONS = 2

SEVERE_EVENT_LEVELS = ("severe", "catastrophic")
STORM_EVENT_TYPES = ("hail", "wind")
DAMAGE_INTEL_CATEGORIES = ("property", "weather")
DAMAGE_INTEL_KEYWORDS = ("damage", "leak", "missing")

RECOMMENDED_ACTIONS = {
    "severe": "Immediate roof replacement recommended",
    "moderate": "Roof replacement or significant repairs recommended",
}
DEFAULT_RECOMMENDED_ACTION = "Schedule a comprehensive roof inspection"

NO_STORM_INSURANCE_RECOMMENDATION = (
    "Standard roof replacement project - not typically covered by insurance."
)


def _is_damage_intel(item: IntelItemData) -> bool:
    if item.category in DAMAGE_INTEL_CATEGORIES:
        return True
    content = (item.content or "").lower()
    return any(keyword in content for keyword in DAMAGE_INTEL_KEYWORDS)


def _insurance_recommendation(recent_event: Optional[WeatherEventData]) -> str:
    if recent_event is None or recent_event.event_type not in STORM_EVENT_TYPES:
        return NO_STORM_INSURANCE_RECOMMENDATION
    return (
        "Storm damage may be covered by homeowner's insurance. We recommend "
        f"filing a claim for the {format_event_date(recent_event.event_date)} "
        f"{recent_event.event_type} event."
    )


def assess_damage(
    weather_events: Sequence[WeatherEventData],
    property_data: PropertyData,
    intel_items: Sequence[IntelItemData]
) -> DamageAssessment:
    """Assess roof damage for a customer.

    Args:
        weather_events: Weather history sorted newest first
        property_data: Property details (roof age is the main input)
        intel_items: Field intel; property/weather or damage-related items
            are cited in the description

    Returns:
        DamageAssessment
    """
    recent_event = weather_events[0] if weather_events else None
    roof_age = property_data.roof_age or 0

    damage_type = "age"
    damage_severity = "minor"
    if recent_event is not None:
        damage_type = recent_event.event_type
        damage_severity = recent_event.severity

    if len({event.event_type for event in weather_events}) > 1:
        damage_type = "multiple"

    affected_areas: List[str] = []

    if recent_event is not None and recent_event.event_type == "hail" and recent_event.hail_size:
        damage_description = (
            f"Hail damage from {format_number(recent_event.hail_size)}\" hail event "
            f"on {format_event_date(recent_event.event_date)}."
        )
        affected_areas.extend(["Shingles", "Vents", "Gutters"])
        if recent_event.hail_size >= 1:
            affected_areas.extend(["Siding", "Window screens"])
    elif recent_event is not None and recent_event.event_type == "wind" and recent_event.wind_speed:
        damage_description = (
            f"Wind damage from {format_number(recent_event.wind_speed)} mph wind event "
            f"on {format_event_date(recent_event.event_date)}."
        )
        affected_areas.extend(["Shingles", "Ridge cap", "Flashing"])
    elif roof_age >= AGING_ROOF_YEARS:
        damage_description = (
            f"Roof is {roof_age} years old and approaching end of serviceable life."
        )
        affected_areas.extend(["Shingles (wear)", "Flashing", "Underlayment"])
        damage_severity = "severe" if roof_age >= END_OF_LIFE_ROOF_YEARS else "moderate"
    else:
        damage_description = "Roof inspection recommended to assess current condition."

    damage_intel = [item for item in intel_items if _is_damage_intel(item)]
    if damage_intel:
        observations = "; ".join(item.title for item in damage_intel[:MAX_INTEL_OBSERVATIONS])
        damage_description += f" Additional observations: {observations}."

    urgency_level = UrgencyLevel.STANDARD
    has_severe_event = any(event.severity in SEVERE_EVENT_LEVELS for event in weather_events)
    if has_severe_event or roof_age >= END_OF_LIFE_ROOF_YEARS:
        urgency_level = UrgencyLevel.HIGH
    # Unclaimed damage on the latest storm outranks everything else
    if recent_event is not None and recent_event.damage_reported and not recent_event.claim_filed:
        urgency_level = UrgencyLevel.URGENT

    assessment = DamageAssessment(
        damage_type=damage_type,
        damage_severity=damage_severity,
        damage_description=damage_description,
        affected_areas=affected_areas,
        urgency_level=urgency_level,
        recommended_action=RECOMMENDED_ACTIONS.get(damage_severity, DEFAULT_RECOMMENDED_ACTION),
        insurance_recommendation=_insurance_recommendation(recent_event)
    )

    logger.debug(
        "damage_assessed",
        damage_type=assessment.damage_type,
        damage_severity=assessment.damage_severity,
        urgency_level=assessment.urgency_level,
        weather_event_count=len(weather_events),
        damage_intel_count=len(damage_intel)
    )

    return assessment
