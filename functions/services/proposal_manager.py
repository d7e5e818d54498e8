"""Saved proposal management.

Lists, fetches, edits and deletes the proposal records written by
ProposalGenerator.save_proposal. Edits that change the discount
recompute subtotal, tax and total from the stored figures.
"""

import json
import math
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import structlog
from firebase_admin import firestore

from config.errors import ErrorCode, ProposalEngineError
from models.proposal import ProposalListQuery, ProposalStatus, ProposalUpdate, SortOrder
from services.firestore_service import FirestoreService
from utils.formatting import round_half_up

logger = structlog.get_logger()

# Proposal columns stored as JSON strings, with the value used when absent
JSON_COLUMNS = {
    "lineItems": [],
    "pricingOptions": [],
    "sourceDataSnapshot": None,
}


def decode_proposal_record(record: Dict[str, Any]) -> Dict[str, Any]:
    """Parse the JSON string columns of a stored proposal record."""
    decoded = dict(record)
    for key, empty in JSON_COLUMNS.items():
        value = decoded.get(key)
        if isinstance(value, str) and value:
            decoded[key] = json.loads(value)
        elif not value:
            decoded[key] = empty
    return decoded


def build_proposal_changes(
    existing: Dict[str, Any],
    update: ProposalUpdate,
    now: Optional[datetime] = None
) -> Dict[str, Any]:
    """Turn an update request into the fields to write.

    - draft -> sent stamps sentAt
    - a signature stamps signedAt and respondedAt and accepts the proposal
    - a changed discount reprices subtotal, tax and total, keeping the
      stored tax rate
    """
    now = now or datetime.now(timezone.utc)
    changes = update.model_dump(by_alias=True, exclude_unset=True)

    if changes.get("status") == ProposalStatus.SENT.value and existing.get("status") == ProposalStatus.DRAFT.value:
        changes["sentAt"] = now

    if changes.get("signatureData"):
        changes["signedAt"] = now
        changes["respondedAt"] = now
        changes["status"] = ProposalStatus.ACCEPTED.value

    new_discount = changes.get("discountAmount")
    old_discount = existing.get("discountAmount") or 0
    if new_discount is not None and new_discount != old_discount:
        subtotal = (existing.get("subtotal") or 0) - new_discount + old_discount
        tax_amount = subtotal * (existing.get("taxRate") or 0)
        changes["discountAmount"] = round_half_up(new_discount)
        changes["subtotal"] = round_half_up(subtotal)
        changes["taxAmount"] = round_half_up(tax_amount)
        changes["totalPrice"] = round_half_up(subtotal + tax_amount)

    return changes


class ProposalManager:
    """Operations on saved proposal records.

    Usage:
        manager = ProposalManager()
        page = await manager.list_proposals(ProposalListQuery(status="draft"))
        proposal = await manager.update_proposal(proposal_id, ProposalUpdate(status="sent"))
    """

    def __init__(self, firestore_service: Optional[FirestoreService] = None):
        self.firestore = firestore_service or FirestoreService()

    async def list_proposals(self, query: ProposalListQuery) -> Dict[str, Any]:
        """List proposals with filters, sorting and page metadata."""
        filters: Dict[str, Any] = {}
        if query.customer_id:
            filters["customerId"] = query.customer_id
        if query.status:
            filters["status"] = ProposalStatus(query.status).value

        records, total = await self.firestore.query_proposals(
            filters,
            order_by=query.sort_by.value,
            descending=query.sort_order == SortOrder.DESC,
            offset=query.offset,
            limit=query.limit
        )

        logger.debug("proposals_listed", filters=filters, page=query.page, total=total)

        return {
            "proposals": [decode_proposal_record(record) for record in records],
            "pagination": {
                "page": query.page,
                "limit": query.limit,
                "total": total,
                "totalPages": math.ceil(total / query.limit),
                "hasNext": query.page * query.limit < total,
                "hasPrev": query.page > 1,
            },
        }

    async def _require(self, proposal_id: str) -> Dict[str, Any]:
        proposal = await self.firestore.get_proposal(proposal_id)
        if proposal is None:
            raise ProposalEngineError(
                code=ErrorCode.PROPOSAL_NOT_FOUND,
                message=f"Proposal not found: {proposal_id}",
                details={"proposalId": proposal_id}
            )
        return proposal

    async def get_proposal(self, proposal_id: str, customer_view: bool = False) -> Dict[str, Any]:
        """Fetch a proposal with its JSON columns decoded.

        A customer view of a sent proposal marks it viewed and counts the view.

        Raises:
            ProposalEngineError: PROPOSAL_NOT_FOUND if no such proposal.
        """
        proposal = await self._require(proposal_id)

        if customer_view and proposal.get("status") == ProposalStatus.SENT.value:
            viewed_at = proposal.get("viewedAt") or datetime.now(timezone.utc)
            await self.firestore.update_proposal(proposal_id, {
                "status": ProposalStatus.VIEWED.value,
                "viewedAt": viewed_at,
                "viewCount": firestore.Increment(1),
            })
            proposal = {
                **proposal,
                "status": ProposalStatus.VIEWED.value,
                "viewedAt": viewed_at,
                "viewCount": (proposal.get("viewCount") or 0) + 1,
            }

        return decode_proposal_record(proposal)

    async def update_proposal(self, proposal_id: str, update: ProposalUpdate) -> Dict[str, Any]:
        """Apply an edit and return the updated proposal.

        Raises:
            ProposalEngineError: PROPOSAL_NOT_FOUND if no such proposal.
        """
        existing = await self._require(proposal_id)
        changes = build_proposal_changes(existing, update)

        if changes:
            await self.firestore.update_proposal(proposal_id, changes)

        return decode_proposal_record({**existing, **changes})

    async def delete_proposal(self, proposal_id: str) -> None:
        """Delete a proposal that has not been accepted.

        Raises:
            ProposalEngineError: PROPOSAL_NOT_FOUND if no such proposal,
                PROPOSAL_LOCKED if it was accepted.
        """
        existing = await self._require(proposal_id)

        if existing.get("status") == ProposalStatus.ACCEPTED.value:
            raise ProposalEngineError(
                code=ErrorCode.PROPOSAL_LOCKED,
                message="Cannot delete an accepted proposal",
                details={"proposalId": proposal_id}
            )

        await self.firestore.delete_proposal(proposal_id)
