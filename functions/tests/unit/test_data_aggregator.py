"""Unit tests for customer data aggregation."""

import pytest
from unittest.mock import AsyncMock, MagicMock

from config.errors import ErrorCode, ProposalEngineError
from services.data_aggregator import DataAggregator
from tests.fixtures.mock_customer_data import (
    CUSTOMER_DOCUMENT,
    INTEL_ITEM_DOCUMENTS,
    INTERACTION_DOCUMENTS,
    WEATHER_EVENT_DOCUMENTS,
)


def _firestore_with(customer, records=None):
    records = records or {}
    service = MagicMock()
    service.get_customer = AsyncMock(return_value=customer)

    async def list_records(customer_id, subcollection, order_by, limit):
        return records.get(subcollection, [])

    service.list_customer_records = AsyncMock(side_effect=list_records)
    return service


class TestDataAggregator:
    """Tests for DataAggregator."""

    @pytest.mark.asyncio
    async def test_missing_customer_returns_none(self):
        firestore = _firestore_with(None)
        aggregator = DataAggregator(firestore)

        result = await aggregator.aggregate("cust-missing")

        assert result is None
        firestore.list_customer_records.assert_not_called()

    @pytest.mark.asyncio
    async def test_bundle_mapped_from_documents(self):
        firestore = _firestore_with(dict(CUSTOMER_DOCUMENT), {
            "weatherEvents": WEATHER_EVENT_DOCUMENTS,
            "intelItems": INTEL_ITEM_DOCUMENTS,
            "interactions": INTERACTION_DOCUMENTS,
        })
        aggregator = DataAggregator(firestore)

        bundle = await aggregator.aggregate("cust-001")

        assert bundle.customer.full_name == "Jane Doe"
        assert bundle.customer.zip_code == "19103"
        assert bundle.property.square_footage == 2000
        assert bundle.property.roof_pitch == "6/12"
        assert bundle.insurance.carrier == "State Farm"
        assert bundle.insurance.claim_history == 1
        assert [e.id for e in bundle.weather_events] == ["wx-001", "wx-000"]
        assert bundle.weather_events[0].hail_size == 1.25
        assert bundle.weather_events[1].wind_speed == 55
        assert bundle.intel_items[0].title == "Missing shingles on north slope"
        assert bundle.interactions[0].type == "call"

    @pytest.mark.asyncio
    async def test_history_queries_are_bounded_and_ordered(self):
        firestore = _firestore_with(dict(CUSTOMER_DOCUMENT))
        aggregator = DataAggregator(firestore)

        await aggregator.aggregate("cust-001")

        calls = {
            c.args[1]: (c.kwargs["order_by"], c.kwargs["limit"])
            for c in firestore.list_customer_records.call_args_list
        }
        assert calls == {
            "weatherEvents": ("eventDate", 10),
            "intelItems": ("createdAt", 20),
            "interactions": ("createdAt", 10),
        }

    @pytest.mark.asyncio
    async def test_sparse_customer_document(self):
        firestore = _firestore_with({
            "id": "cust-002",
            "firstName": "Sam",
            "lastName": "Lee",
            "address": "9 Elm Ave",
            "city": "Wilmington",
            "state": "DE",
            "zipCode": "19801",
        })
        aggregator = DataAggregator(firestore)

        bundle = await aggregator.aggregate("cust-002")

        assert bundle.property.square_footage is None
        assert bundle.insurance.carrier is None
        assert bundle.insurance.claim_history == 0
        assert bundle.weather_events == []

    @pytest.mark.asyncio
    async def test_firestore_errors_propagate(self):
        firestore = MagicMock()
        firestore.get_customer = AsyncMock(side_effect=ProposalEngineError(
            code=ErrorCode.FIRESTORE_ERROR,
            message="Failed to get customer: unavailable"
        ))
        aggregator = DataAggregator(firestore)

        with pytest.raises(ProposalEngineError) as exc_info:
            await aggregator.aggregate("cust-001")

        assert exc_info.value.code == ErrorCode.FIRESTORE_ERROR
