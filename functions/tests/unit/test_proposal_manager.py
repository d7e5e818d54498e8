"""Unit tests for saved proposal management."""

from datetime import datetime, timezone

import pytest
from unittest.mock import AsyncMock, MagicMock

from config.errors import ErrorCode, ProposalEngineError
from models.proposal import ProposalListQuery, ProposalUpdate
from services.proposal_manager import (
    ProposalManager,
    build_proposal_changes,
    decode_proposal_record,
)

NOW = datetime(2026, 7, 1, 15, 30, tzinfo=timezone.utc)


def make_record(**overrides):
    record = {
        "id": "prop-doc-1",
        "proposalNumber": "PROP-000042",
        "status": "draft",
        "subtotal": 9454,
        "taxRate": 0.06,
        "taxAmount": 567,
        "totalPrice": 10021,
        "discountAmount": 0,
        "lineItems": '[{"id": "shingles"}]',
        "pricingOptions": "[]",
        "sourceDataSnapshot": '{"customerId": "cust-001"}',
    }
    record.update(overrides)
    return record


def make_manager(record=None, records=None, total=0):
    firestore = MagicMock()
    firestore.get_proposal = AsyncMock(return_value=record)
    firestore.query_proposals = AsyncMock(return_value=(records or [], total))
    firestore.update_proposal = AsyncMock()
    firestore.delete_proposal = AsyncMock()
    return ProposalManager(firestore_service=firestore), firestore


class TestDecodeProposalRecord:
    """Tests for JSON column decoding."""

    def test_decodes_json_columns(self):
        decoded = decode_proposal_record(make_record())
        assert decoded["lineItems"] == [{"id": "shingles"}]
        assert decoded["pricingOptions"] == []
        assert decoded["sourceDataSnapshot"] == {"customerId": "cust-001"}
        assert decoded["proposalNumber"] == "PROP-000042"

    def test_missing_columns_get_empty_values(self):
        decoded = decode_proposal_record({"id": "prop-doc-1", "lineItems": ""})
        assert decoded["lineItems"] == []
        assert decoded["pricingOptions"] == []
        assert decoded["sourceDataSnapshot"] is None

    def test_does_not_mutate_record(self):
        record = make_record()
        decode_proposal_record(record)
        assert record["lineItems"] == '[{"id": "shingles"}]'


class TestBuildProposalChanges:
    """Tests for turning edits into stored fields."""

    def test_only_given_fields(self):
        changes = build_proposal_changes(
            make_record(),
            ProposalUpdate.model_validate({"customerNotes": "Call after 5pm"}),
            now=NOW
        )
        assert changes == {"customerNotes": "Call after 5pm"}

    def test_draft_to_sent_stamps_sent_at(self):
        changes = build_proposal_changes(make_record(), ProposalUpdate(status="sent"), now=NOW)
        assert changes == {"status": "sent", "sentAt": NOW}

    def test_resend_keeps_sent_at(self):
        changes = build_proposal_changes(make_record(status="viewed"), ProposalUpdate(status="sent"), now=NOW)
        assert "sentAt" not in changes

    def test_signature_accepts(self):
        update = ProposalUpdate.model_validate({
            "signatureData": "data:image/png;base64,AAAA",
            "signedByName": "Jane Doe",
            "signedByEmail": "jane@example.com",
        })
        changes = build_proposal_changes(make_record(status="viewed"), update, now=NOW)

        assert changes["status"] == "accepted"
        assert changes["signedAt"] == NOW
        assert changes["respondedAt"] == NOW
        assert changes["signedByName"] == "Jane Doe"

    def test_discount_reprices(self):
        update = ProposalUpdate.model_validate({"discountAmount": 500, "discountReason": "Storm special"})
        changes = build_proposal_changes(make_record(), update, now=NOW)

        assert changes["discountAmount"] == 500
        assert changes["discountReason"] == "Storm special"
        assert changes["subtotal"] == 8954
        assert changes["taxAmount"] == 537
        assert changes["totalPrice"] == 9491

    def test_discount_replaces_previous_discount(self):
        existing = make_record(subtotal=8954, discountAmount=500, taxAmount=537, totalPrice=9491)
        changes = build_proposal_changes(existing, ProposalUpdate(discount_amount=0), now=NOW)

        assert changes["subtotal"] == 9454
        assert changes["totalPrice"] == 10021

    def test_unchanged_discount_leaves_totals(self):
        existing = make_record(discountAmount=500)
        changes = build_proposal_changes(existing, ProposalUpdate(discount_amount=500), now=NOW)
        assert changes == {"discountAmount": 500}


class TestProposalManager:
    """Tests for ProposalManager."""

    @pytest.mark.asyncio
    async def test_list_proposals(self):
        manager, firestore = make_manager(records=[make_record()], total=45)
        query = ProposalListQuery.model_validate({
            "page": 2,
            "limit": 20,
            "status": "draft",
            "customerId": "cust-001",
            "sortBy": "totalPrice",
            "sortOrder": "asc",
        })

        result = await manager.list_proposals(query)

        assert result["proposals"][0]["lineItems"] == [{"id": "shingles"}]
        assert result["pagination"] == {
            "page": 2,
            "limit": 20,
            "total": 45,
            "totalPages": 3,
            "hasNext": True,
            "hasPrev": True,
        }
        firestore.query_proposals.assert_awaited_once_with(
            {"customerId": "cust-001", "status": "draft"},
            order_by="totalPrice",
            descending=False,
            offset=20,
            limit=20
        )

    @pytest.mark.asyncio
    async def test_list_defaults(self):
        manager, firestore = make_manager(total=0)

        result = await manager.list_proposals(ProposalListQuery())

        assert result["proposals"] == []
        assert result["pagination"]["totalPages"] == 0
        assert result["pagination"]["hasNext"] is False
        assert result["pagination"]["hasPrev"] is False
        kwargs = firestore.query_proposals.call_args.kwargs
        assert firestore.query_proposals.call_args.args == ({},)
        assert (kwargs["order_by"], kwargs["descending"], kwargs["offset"]) == ("createdAt", True, 0)

    @pytest.mark.asyncio
    async def test_get_not_found(self):
        manager, _ = make_manager(record=None)

        with pytest.raises(ProposalEngineError) as exc_info:
            await manager.get_proposal("nope")

        assert exc_info.value.code == ErrorCode.PROPOSAL_NOT_FOUND

    @pytest.mark.asyncio
    async def test_get_does_not_track_staff_views(self):
        manager, firestore = make_manager(record=make_record(status="sent"))

        result = await manager.get_proposal("prop-doc-1")

        assert result["status"] == "sent"
        firestore.update_proposal.assert_not_called()

    @pytest.mark.asyncio
    async def test_customer_view_marks_viewed(self):
        manager, firestore = make_manager(record=make_record(status="sent", viewCount=1))

        result = await manager.get_proposal("prop-doc-1", customer_view=True)

        assert result["status"] == "viewed"
        assert result["viewCount"] == 2
        assert result["viewedAt"] is not None
        proposal_id, written = firestore.update_proposal.call_args.args
        assert proposal_id == "prop-doc-1"
        assert written["status"] == "viewed"
        assert "viewCount" in written

    @pytest.mark.asyncio
    async def test_customer_view_of_draft_not_tracked(self):
        manager, firestore = make_manager(record=make_record(status="draft"))

        await manager.get_proposal("prop-doc-1", customer_view=True)

        firestore.update_proposal.assert_not_called()

    @pytest.mark.asyncio
    async def test_update(self):
        manager, firestore = make_manager(record=make_record())

        result = await manager.update_proposal("prop-doc-1", ProposalUpdate(discount_amount=500))

        assert result["totalPrice"] == 9491
        assert result["lineItems"] == [{"id": "shingles"}]
        written = firestore.update_proposal.call_args.args[1]
        assert written["totalPrice"] == 9491

    @pytest.mark.asyncio
    async def test_empty_update_writes_nothing(self):
        manager, firestore = make_manager(record=make_record())

        result = await manager.update_proposal("prop-doc-1", ProposalUpdate())

        assert result["status"] == "draft"
        firestore.update_proposal.assert_not_called()

    @pytest.mark.asyncio
    async def test_update_not_found(self):
        manager, firestore = make_manager(record=None)

        with pytest.raises(ProposalEngineError) as exc_info:
            await manager.update_proposal("nope", ProposalUpdate(status="sent"))

        assert exc_info.value.code == ErrorCode.PROPOSAL_NOT_FOUND
        firestore.update_proposal.assert_not_called()

    @pytest.mark.asyncio
    async def test_delete(self):
        manager, firestore = make_manager(record=make_record())

        await manager.delete_proposal("prop-doc-1")

        firestore.delete_proposal.assert_awaited_once_with("prop-doc-1")

    @pytest.mark.asyncio
    async def test_accepted_proposal_cannot_be_deleted(self):
        manager, firestore = make_manager(record=make_record(status="accepted"))

        with pytest.raises(ProposalEngineError) as exc_info:
            await manager.delete_proposal("prop-doc-1")

        assert exc_info.value.code == ErrorCode.PROPOSAL_LOCKED
        firestore.delete_proposal.assert_not_called()
