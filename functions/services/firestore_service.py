"""Firestore service for the Guardian proposal engine.

Provides reads of CRM customer data and writes of generated proposals.
"""

from typing import Dict, Any, Optional, List, Tuple
import inspect
import structlog

from firebase_admin import firestore

from config.errors import ProposalEngineError, ErrorCode

logger = structlog.get_logger()


@firestore.transactional
def _increment_counter(transaction, counter_ref) -> int:
    """Read-increment-write a counter document inside a transaction."""
    snapshot = counter_ref.get(transaction=transaction)
    current = 0
    if snapshot.exists:
        current = int((snapshot.to_dict() or {}).get("value", 0))

    next_value = current + 1
    transaction.set(
        counter_ref,
        {"value": next_value, "updatedAt": firestore.SERVER_TIMESTAMP},
        merge=True
    )
    return next_value


class FirestoreService:
    """Service for Firestore operations.

    Handles customer lookups, customer history subcollections, the
    proposal number counter and proposal documents.

    Note: Firebase Admin SDK for Python is synchronous. Methods are
    marked async for interface compatibility but operations are sync.
    """

    COLLECTION_CUSTOMERS = "customers"
    COLLECTION_PROPOSALS = "proposals"
    COLLECTION_COUNTERS = "counters"
    SUBCOLLECTION_WEATHER_EVENTS = "weatherEvents"
    SUBCOLLECTION_INTEL_ITEMS = "intelItems"
    SUBCOLLECTION_INTERACTIONS = "interactions"
    PROPOSAL_COUNTER_ID = "proposals"

    def __init__(self, db=None):
        """Initialize FirestoreService.

        Args:
            db: Optional Firestore client. If not provided, uses default.
        """
        self._db = db

    @property
    def db(self):
        """Get Firestore client (lazy initialization)."""
        if self._db is None:
            self._db = firestore.client()
        return self._db

    async def _maybe_await(self, result: Any) -> Any:
        """Await result if it is awaitable (supports AsyncMock in unit tests)."""
        if inspect.isawaitable(result):
            return await result
        return result

    async def get_customer(self, customer_id: str) -> Optional[Dict[str, Any]]:
        """Fetch customer document by ID.

        Args:
            customer_id: The customer document ID.

        Returns:
            Customer document data (with "id") or None if not found.

        Raises:
            ProposalEngineError: If Firestore operation fails.
        """
        try:
            doc_ref = self.db.collection(self.COLLECTION_CUSTOMERS).document(customer_id)
            doc = await self._maybe_await(doc_ref.get())

            if doc.exists:
                return {"id": doc.id, **(doc.to_dict() or {})}
            return None

        except Exception as e:
            logger.error("firestore_get_failed", customer_id=customer_id, error=str(e))
            raise ProposalEngineError(
                code=ErrorCode.FIRESTORE_ERROR,
                message=f"Failed to get customer: {str(e)}",
                details={"customer_id": customer_id}
            )

    async def list_customer_records(
        self,
        customer_id: str,
        subcollection: str,
        order_by: str,
        limit: int
    ) -> List[Dict[str, Any]]:
        """List a customer's history records, newest first.

        Data is read from:
          /customers/{customerId}/{subcollection}

        Args:
            customer_id: The customer document ID.
            subcollection: Subcollection name (weatherEvents, intelItems, ...).
            order_by: Field to sort on, descending.
            limit: Maximum number of records to return.

        Returns:
            List of record documents (each includes "id").

        Raises:
            ProposalEngineError: If Firestore operation fails.
        """
        try:
            query = (
                self.db
                .collection(self.COLLECTION_CUSTOMERS)
                .document(customer_id)
                .collection(subcollection)
                .order_by(order_by, direction=firestore.Query.DESCENDING)
                .limit(int(limit))
            )

            results: List[Dict[str, Any]] = []
            for doc in query.stream():
                results.append({"id": doc.id, **(doc.to_dict() or {})})
            return results

        except Exception as e:
            logger.error(
                "customer_records_list_failed",
                customer_id=customer_id,
                subcollection=subcollection,
                error=str(e)
            )
            raise ProposalEngineError(
                code=ErrorCode.FIRESTORE_ERROR,
                message=f"Failed to list {subcollection}: {str(e)}",
                details={"customer_id": customer_id, "subcollection": subcollection}
            )

    async def next_proposal_sequence(self) -> int:
        """Allocate the next proposal sequence number.

        The counter lives at /counters/proposals and is incremented in a
        transaction, so concurrent saves never share a number.

        Raises:
            ProposalEngineError: If the transaction fails.
        """
        try:
            counter_ref = (
                self.db
                .collection(self.COLLECTION_COUNTERS)
                .document(self.PROPOSAL_COUNTER_ID)
            )
            transaction = self.db.transaction()
            sequence = _increment_counter(transaction, counter_ref)
            logger.debug("proposal_sequence_allocated", sequence=sequence)
            return sequence

        except Exception as e:
            logger.error("proposal_sequence_failed", error=str(e))
            raise ProposalEngineError(
                code=ErrorCode.FIRESTORE_WRITE_FAILED,
                message=f"Failed to allocate proposal number: {str(e)}"
            )

    async def create_proposal(self, record: Dict[str, Any]) -> str:
        """Create a new proposal document.

        Args:
            record: Flat proposal record (camelCase fields).

        Returns:
            The generated proposal document ID.

        Raises:
            ProposalEngineError: If Firestore operation fails.
        """
        try:
            doc_ref = self.db.collection(self.COLLECTION_PROPOSALS).document()

            proposal_data = {
                **record,
                "createdAt": firestore.SERVER_TIMESTAMP,
                "updatedAt": firestore.SERVER_TIMESTAMP
            }

            await self._maybe_await(doc_ref.set(proposal_data))
            logger.info(
                "proposal_created",
                proposal_id=doc_ref.id,
                proposal_number=record.get("proposalNumber"),
                customer_id=record.get("customerId")
            )

            return doc_ref.id

        except Exception as e:
            logger.error(
                "proposal_create_failed",
                customer_id=record.get("customerId"),
                error=str(e)
            )
            raise ProposalEngineError(
                code=ErrorCode.FIRESTORE_WRITE_FAILED,
                message=f"Failed to create proposal: {str(e)}",
                details={"customer_id": record.get("customerId")}
            )

    async def get_proposal(self, proposal_id: str) -> Optional[Dict[str, Any]]:
        """Fetch proposal document by ID.

        Args:
            proposal_id: The proposal document ID.

        Returns:
            Proposal document data (with "id") or None if not found.

        Raises:
            ProposalEngineError: If Firestore operation fails.
        """
        try:
            doc_ref = self.db.collection(self.COLLECTION_PROPOSALS).document(proposal_id)
            doc = await self._maybe_await(doc_ref.get())

            if doc.exists:
                return {"id": doc.id, **(doc.to_dict() or {})}
            return None

        except Exception as e:
            logger.error("firestore_get_failed", proposal_id=proposal_id, error=str(e))
            raise ProposalEngineError(
                code=ErrorCode.FIRESTORE_ERROR,
                message=f"Failed to get proposal: {str(e)}",
                details={"proposal_id": proposal_id}
            )

    async def query_proposals(
        self,
        filters: Dict[str, Any],
        order_by: str,
        descending: bool,
        offset: int,
        limit: int
    ) -> Tuple[List[Dict[str, Any]], int]:
        """Query proposal documents with equality filters and pagination.

        Args:
            filters: Field -> value equality filters (customerId, status).
            order_by: Field to sort on.
            descending: Sort direction.
            offset: Number of matching documents to skip.
            limit: Maximum number of documents to return.

        Returns:
            Tuple of (page of proposal documents, total matching count).

        Raises:
            ProposalEngineError: If Firestore operation fails.
        """
        try:
            query = self.db.collection(self.COLLECTION_PROPOSALS)
            for field_path, value in filters.items():
                query = query.where(filter=firestore.FieldFilter(field_path, "==", value))

            count_results = await self._maybe_await(query.count(alias="total").get())
            total = int(count_results[0][0].value) if count_results else 0

            direction = firestore.Query.DESCENDING if descending else firestore.Query.ASCENDING
            page_query = query.order_by(order_by, direction=direction).offset(int(offset)).limit(int(limit))

            results = [{"id": doc.id, **(doc.to_dict() or {})} for doc in page_query.stream()]
            return results, total

        except Exception as e:
            logger.error("proposal_query_failed", filters=filters, order_by=order_by, error=str(e))
            raise ProposalEngineError(
                code=ErrorCode.FIRESTORE_ERROR,
                message=f"Failed to list proposals: {str(e)}",
                details={"filters": filters}
            )

    async def update_proposal(self, proposal_id: str, data: Dict[str, Any]) -> None:
        """Update fields of a proposal document.

        Raises:
            ProposalEngineError: If Firestore operation fails.
        """
        try:
            doc_ref = self.db.collection(self.COLLECTION_PROPOSALS).document(proposal_id)

            data = {**data, "updatedAt": firestore.SERVER_TIMESTAMP}

            await self._maybe_await(doc_ref.update(data))
            logger.info("proposal_updated", proposal_id=proposal_id, fields=sorted(data.keys()))

        except Exception as e:
            logger.error("proposal_update_failed", proposal_id=proposal_id, error=str(e))
            raise ProposalEngineError(
                code=ErrorCode.FIRESTORE_WRITE_FAILED,
                message=f"Failed to update proposal: {str(e)}",
                details={"proposal_id": proposal_id}
            )

    async def delete_proposal(self, proposal_id: str) -> None:
        """Delete a proposal document.

        Raises:
            ProposalEngineError: If Firestore operation fails.
        """
        try:
            doc_ref = self.db.collection(self.COLLECTION_PROPOSALS).document(proposal_id)
            await self._maybe_await(doc_ref.delete())
            logger.info("proposal_deleted", proposal_id=proposal_id)

        except Exception as e:
            logger.error("proposal_delete_failed", proposal_id=proposal_id, error=str(e))
            raise ProposalEngineError(
                code=ErrorCode.FIRESTORE_WRITE_FAILED,
                message=f"Failed to delete proposal: {str(e)}",
                details={"proposal_id": proposal_id}
            )
