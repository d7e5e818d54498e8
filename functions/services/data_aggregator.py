"""Customer data aggregation for proposal generation.

Gathers one customer's CRM document and bounded, newest-first slices of
their weather, intel and interaction history into a CustomerDataBundle.
"""

from typing import Any, Dict, Optional

import structlog

from models.customer import (
    CustomerData,
    CustomerDataBundle,
    InsuranceData,
    IntelItemData,
    InteractionData,
    PropertyData,
    WeatherEventData,
)
from services.firestore_service import FirestoreService

logger = structlog.get_logger()

WEATHER_EVENTS_LIMIT = 10
INTEL_ITEMS_LIMIT = 20
INTERACTIONS_LIMIT = 10


def _customer_from_document(doc: Dict[str, Any]) -> CustomerData:
    return CustomerData(
        id=doc["id"],
        first_name=doc.get("firstName") or "",
        last_name=doc.get("lastName") or "",
        email=doc.get("email"),
        phone=doc.get("phone"),
        address=doc.get("address") or "",
        city=doc.get("city") or "",
        state=doc.get("state") or "",
        zip_code=doc.get("zipCode") or ""
    )


def _property_from_document(doc: Dict[str, Any]) -> PropertyData:
    return PropertyData(
        property_type=doc.get("propertyType"),
        year_built=doc.get("yearBuilt"),
        square_footage=doc.get("squareFootage"),
        stories=doc.get("stories"),
        roof_type=doc.get("roofType"),
        roof_age=doc.get("roofAge"),
        roof_squares=doc.get("roofSquares"),
        roof_pitch=doc.get("roofPitch"),
        roof_condition=doc.get("roofCondition"),
        property_value=doc.get("propertyValue")
    )


def _insurance_from_document(doc: Dict[str, Any]) -> InsuranceData:
    # Customer documents store the carrier as insuranceCarrier
    return InsuranceData(
        carrier=doc.get("insuranceCarrier"),
        policy_type=doc.get("policyType"),
        policy_number=doc.get("policyNumber"),
        deductible=doc.get("deductible"),
        claim_history=doc.get("claimHistory") or 0
    )


class DataAggregator:
    """Builds the read-only data bundle a proposal is generated from."""

    def __init__(self, firestore_service: Optional[FirestoreService] = None):
        self.firestore = firestore_service or FirestoreService()

    async def aggregate(self, customer_id: str) -> Optional[CustomerDataBundle]:
        """Gather all CRM data for a customer.

        Args:
            customer_id: The customer document ID.

        Returns:
            CustomerDataBundle, or None if the customer does not exist.

        Raises:
            ProposalEngineError: If Firestore reads fail.
        """
        doc = await self.firestore.get_customer(customer_id)
        if doc is None:
            logger.info("customer_not_found", customer_id=customer_id)
            return None

        weather_docs = await self.firestore.list_customer_records(
            customer_id,
            FirestoreService.SUBCOLLECTION_WEATHER_EVENTS,
            order_by="eventDate",
            limit=WEATHER_EVENTS_LIMIT
        )
        intel_docs = await self.firestore.list_customer_records(
            customer_id,
            FirestoreService.SUBCOLLECTION_INTEL_ITEMS,
            order_by="createdAt",
            limit=INTEL_ITEMS_LIMIT
        )
        interaction_docs = await self.firestore.list_customer_records(
            customer_id,
            FirestoreService.SUBCOLLECTION_INTERACTIONS,
            order_by="createdAt",
            limit=INTERACTIONS_LIMIT
        )

        bundle = CustomerDataBundle(
            customer=_customer_from_document(doc),
            property=_property_from_document(doc),
            insurance=_insurance_from_document(doc),
            weather_events=[WeatherEventData.model_validate(d) for d in weather_docs],
            intel_items=[IntelItemData.model_validate(d) for d in intel_docs],
            interactions=[InteractionData.model_validate(d) for d in interaction_docs]
        )

        logger.info(
            "customer_data_aggregated",
            customer_id=customer_id,
            weather_events=len(bundle.weather_events),
            intel_items=len(bundle.intel_items),
            interactions=len(bundle.interactions)
        )

        return bundle
