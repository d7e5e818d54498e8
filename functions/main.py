"""Cloud Function entry points for the Guardian proposal engine.

Provides HTTP endpoints for:
- Generating and saving a proposal
- Previewing a proposal without saving it
- Fetching, listing, editing and deleting saved proposals
"""

import asyncio
import json
from typing import Dict, Any
from datetime import datetime, date

import structlog
from firebase_functions import https_fn, options
from firebase_admin import initialize_app

from config.errors import (
    CUSTOMER_NOT_FOUND_MESSAGE,
    ErrorCode,
    ProposalEngineError,
    ValidationError,
)
from models.proposal import ProposalGenerationRequest
from services.firestore_service import FirestoreService
from services.llm_service import LLMService
from services.proposal_generator import ProposalGenerator
from services.proposal_manager import ProposalManager
from validators.request_validator import (
    validate_generation_request,
    validate_list_query,
    validate_update_request,
)

# Initialize Firebase Admin SDK
try:
    initialize_app()
except ValueError:
    # Already initialized
    pass

logger = structlog.get_logger()

# ============================================================================
# Helper Functions
# ============================================================================


def success_response(data: Dict[str, Any]) -> Dict[str, Any]:
    """Build success response."""
    return {"success": True, "data": data}


def error_response(code: str, message: str, details: Dict[str, Any] = None) -> Dict[str, Any]:
    """Build error response."""
    return {
        "success": False,
        "error": {
            "code": code,
            "message": message,
            "details": details or {}
        }
    }


def get_request_json(req: https_fn.Request) -> Dict[str, Any]:
    """Extract JSON from request body.

    Args:
        req: HTTP request object.

    Returns:
        Parsed JSON data.

    Raises:
        ValidationError: If JSON is invalid.
    """
    try:
        return req.get_json(force=True) or {}
    except Exception as e:
        raise ValidationError(
            message=f"Invalid JSON in request body: {str(e)}"
        )


def _build_generator() -> ProposalGenerator:
    firestore_service = FirestoreService()
    return ProposalGenerator(
        firestore_service=firestore_service,
        llm_service=LLMService()
    )


def _build_manager() -> ProposalManager:
    return ProposalManager(FirestoreService())


def _missing_proposal_id_response() -> https_fn.Response:
    return _json_response(
        error_response(
            ErrorCode.MISSING_FIELD,
            "Missing proposalId in request"
        ),
        status=400
    )


def _generation_failure_response(error: str) -> https_fn.Response:
    if error == CUSTOMER_NOT_FOUND_MESSAGE:
        return _json_response(
            error_response(ErrorCode.CUSTOMER_NOT_FOUND, error),
            status=404
        )
    return _json_response(
        error_response(ErrorCode.PROPOSAL_GENERATION_FAILED, error),
        status=500
    )


# ============================================================================
# Proposal Entry Points
# ============================================================================


@https_fn.on_request(
    timeout_sec=120,
    memory=options.MemoryOption.MB_512,
    region="us-central1"
)
def generate_proposal(req: https_fn.Request) -> https_fn.Response:
    """Generate a proposal for a customer and save it as a draft.

    Request body:
    {
        "userId": "user-123",
        "customerId": "cust-abc",
        "materialGrade": "premium",                        // Optional
        "customDiscount": {"amount": 500, "reason": "..."}  // Optional
    }

    Response:
    {
        "success": true,
        "data": {
            "proposalId": "xyz",
            "proposalNumber": "PROP-000042",
            "proposal": {...}
        }
    }
    """
    if req.method == "OPTIONS":
        return _cors_response()

    try:
        data = get_request_json(req)
        validation_result = validate_generation_request(data)
        if not validation_result.is_valid:
            return _json_response(
                error_response(
                    ErrorCode.VALIDATION_ERROR,
                    "Invalid request data",
                    {"errors": validation_result.errors}
                ),
                status=400
            )

        request = validation_result.request
        logger.info(
            "proposal_request_received",
            customer_id=request.customer_id,
            created_by_id=request.created_by_id
        )

        result = asyncio.run(_generate_and_save_async(request))
        if not result["success"]:
            return _generation_failure_response(result["error"])

        return _json_response(success_response(result["data"]), status=201)

    except ValidationError as e:
        return _json_response(
            error_response(e.code, e.message, e.details),
            status=400
        )
    except ProposalEngineError as e:
        logger.error("proposal_request_error", error=e.message, code=e.code)
        return _json_response(
            error_response(e.code, e.message, e.details),
            status=500
        )
    except Exception as e:
        logger.exception("proposal_request_exception", error=str(e))
        return _json_response(
            error_response(
                ErrorCode.PROPOSAL_GENERATION_FAILED,
                f"Failed to generate proposal: {str(e)}"
            ),
            status=500
        )


async def _generate_and_save_async(request: ProposalGenerationRequest) -> Dict[str, Any]:
    """Generate a proposal and persist it."""
    generator = _build_generator()

    result = await generator.generate_proposal(request)
    if not result.success:
        return {"success": False, "error": result.error}

    saved = await generator.save_proposal(result.proposal, request.created_by_id)

    return {
        "success": True,
        "data": {
            "proposalId": saved.id,
            "proposalNumber": saved.proposal_number,
            "proposal": result.proposal.model_dump(by_alias=True, mode="json")
        }
    }


@https_fn.on_request(
    timeout_sec=120,
    memory=options.MemoryOption.MB_512,
    region="us-central1"
)
def preview_proposal(req: https_fn.Request) -> https_fn.Response:
    """Generate a proposal without saving it.

    Takes the same request body as generate_proposal and returns the
    generated proposal as data.
    """
    if req.method == "OPTIONS":
        return _cors_response()

    try:
        data = get_request_json(req)
        validation_result = validate_generation_request(data)
        if not validation_result.is_valid:
            return _json_response(
                error_response(
                    ErrorCode.VALIDATION_ERROR,
                    "Invalid request data",
                    {"errors": validation_result.errors}
                ),
                status=400
            )

        result = asyncio.run(_preview_async(validation_result.request))
        if not result["success"]:
            return _generation_failure_response(result["error"])

        return _json_response(success_response(result["data"]))

    except ValidationError as e:
        return _json_response(
            error_response(e.code, e.message, e.details),
            status=400
        )
    except Exception as e:
        logger.exception("proposal_preview_exception", error=str(e))
        return _json_response(
            error_response(
                ErrorCode.PROPOSAL_GENERATION_FAILED,
                f"Failed to generate proposal preview: {str(e)}"
            ),
            status=500
        )


async def _preview_async(request: ProposalGenerationRequest) -> Dict[str, Any]:
    """Generate a proposal without persisting it."""
    generator = _build_generator()

    result = await generator.generate_proposal(request)
    if not result.success:
        return {"success": False, "error": result.error}

    return {
        "success": True,
        "data": result.proposal.model_dump(by_alias=True, mode="json")
    }


@https_fn.on_request(
    timeout_sec=30,
    memory=options.MemoryOption.MB_256,
    region="us-central1"
)
def get_proposal(req: https_fn.Request) -> https_fn.Response:
    """Get a saved proposal.

    Request body:
    {
        "proposalId": "xyz"
    }

    Send the header ``X-Proposal-View: customer`` from the customer portal
    to record that a sent proposal was viewed.
    """
    if req.method == "OPTIONS":
        return _cors_response()

    try:
        data = get_request_json(req)
        proposal_id = data.get("proposalId")

        if not proposal_id:
            return _missing_proposal_id_response()

        customer_view = req.headers.get("X-Proposal-View") == "customer"
        result = asyncio.run(_build_manager().get_proposal(proposal_id, customer_view=customer_view))

        return _json_response(success_response(result))

    except ValidationError as e:
        return _json_response(
            error_response(e.code, e.message, e.details),
            status=400
        )
    except ProposalEngineError as e:
        return _json_response(
            error_response(e.code, e.message, e.details),
            status=404 if e.code == ErrorCode.PROPOSAL_NOT_FOUND else 500
        )
    except Exception as e:
        logger.exception("get_proposal_error", error=str(e))
        return _json_response(
            error_response(
                ErrorCode.FIRESTORE_ERROR,
                f"Failed to get proposal: {str(e)}"
            ),
            status=500
        )


@https_fn.on_request(
    timeout_sec=30,
    memory=options.MemoryOption.MB_256,
    region="us-central1"
)
def list_proposals(req: https_fn.Request) -> https_fn.Response:
    """List saved proposals.

    Query parameters (or a JSON body on POST):
        page, limit (max 100), customerId, status,
        sortBy (createdAt|updatedAt|totalPrice|status), sortOrder (asc|desc)

    Response:
    {
        "success": true,
        "data": [...],
        "pagination": {"page", "limit", "total", "totalPages", "hasNext", "hasPrev"}
    }
    """
    if req.method == "OPTIONS":
        return _cors_response()

    try:
        params = req.args.to_dict()
        if req.method == "POST":
            params.update(get_request_json(req))

        validation_result = validate_list_query(params)
        if not validation_result.is_valid:
            return _json_response(
                error_response(
                    ErrorCode.INVALID_FIELD,
                    "Invalid query parameters",
                    {"errors": validation_result.errors}
                ),
                status=400
            )

        page = asyncio.run(_build_manager().list_proposals(validation_result.request))

        return _json_response({
            **success_response(page["proposals"]),
            "pagination": page["pagination"]
        })

    except ValidationError as e:
        return _json_response(
            error_response(e.code, e.message, e.details),
            status=400
        )
    except Exception as e:
        logger.exception("list_proposals_error", error=str(e))
        return _json_response(
            error_response(
                ErrorCode.FIRESTORE_ERROR,
                f"Failed to list proposals: {str(e)}"
            ),
            status=500
        )


@https_fn.on_request(
    timeout_sec=30,
    memory=options.MemoryOption.MB_256,
    region="us-central1"
)
def update_proposal(req: https_fn.Request) -> https_fn.Response:
    """Edit a saved proposal.

    Request body:
    {
        "proposalId": "xyz",
        "status": "sent",                       // Optional
        "discountAmount": 750,                  // Optional, reprices the proposal
        "executiveSummary": "...",              // Optional content override
        ...
    }
    """
    if req.method == "OPTIONS":
        return _cors_response()

    try:
        data = get_request_json(req)
        proposal_id = data.get("proposalId")

        if not proposal_id:
            return _missing_proposal_id_response()

        validation_result = validate_update_request(data)
        if not validation_result.is_valid:
            return _json_response(
                error_response(
                    ErrorCode.INVALID_FIELD,
                    "Invalid update data",
                    {"errors": validation_result.errors}
                ),
                status=400
            )

        result = asyncio.run(
            _build_manager().update_proposal(proposal_id, validation_result.request)
        )

        return _json_response(success_response(result))

    except ValidationError as e:
        return _json_response(
            error_response(e.code, e.message, e.details),
            status=400
        )
    except ProposalEngineError as e:
        return _json_response(
            error_response(e.code, e.message, e.details),
            status=404 if e.code == ErrorCode.PROPOSAL_NOT_FOUND else 500
        )
    except Exception as e:
        logger.exception("update_proposal_error", error=str(e))
        return _json_response(
            error_response(
                ErrorCode.FIRESTORE_WRITE_FAILED,
                f"Failed to update proposal: {str(e)}"
            ),
            status=500
        )


@https_fn.on_request(
    timeout_sec=30,
    memory=options.MemoryOption.MB_256,
    region="us-central1"
)
def delete_proposal(req: https_fn.Request) -> https_fn.Response:
    """Delete a saved proposal. Accepted proposals cannot be deleted.

    Request body:
    {
        "proposalId": "xyz"
    }
    """
    if req.method == "OPTIONS":
        return _cors_response()

    try:
        data = get_request_json(req)
        proposal_id = data.get("proposalId")

        if not proposal_id:
            return _missing_proposal_id_response()

        asyncio.run(_build_manager().delete_proposal(proposal_id))

        return _json_response(success_response({"proposalId": proposal_id, "deleted": True}))

    except ValidationError as e:
        return _json_response(
            error_response(e.code, e.message, e.details),
            status=400
        )
    except ProposalEngineError as e:
        status = {
            ErrorCode.PROPOSAL_NOT_FOUND: 404,
            ErrorCode.PROPOSAL_LOCKED: 400,
        }.get(e.code, 500)
        return _json_response(
            error_response(e.code, e.message, e.details),
            status=status
        )
    except Exception as e:
        logger.exception("delete_proposal_error", error=str(e))
        return _json_response(
            error_response(
                ErrorCode.FIRESTORE_WRITE_FAILED,
                f"Failed to delete proposal: {str(e)}"
            ),
            status=500
        )


CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization, X-Proposal-View",
    "Access-Control-Max-Age": "3600"
}


def _cors_response() -> https_fn.Response:
    """Return CORS preflight response."""
    return https_fn.Response(
        "",
        status=204,
        headers=CORS_HEADERS
    )


def _json_response(data: dict, status: int = 200) -> https_fn.Response:
    """Return JSON response with CORS headers."""

    def _json_default(o: Any):
        """JSON serializer for objects not serializable by default.

        Firestore returns timestamp types like `DatetimeWithNanoseconds` which
        behave like datetime objects but are not JSON serializable.
        """
        if isinstance(o, (datetime, date)):
            return o.isoformat()
        return str(o)

    return https_fn.Response(
        json.dumps(data, default=_json_default),
        status=status,
        mimetype="application/json",
        headers=CORS_HEADERS
    )
