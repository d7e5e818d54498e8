"""Proposal request parsing and validation.

Deserializes HTTP request bodies and query strings into the proposal
request models and collects every problem as a readable error string.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
import structlog

from models.proposal import ProposalGenerationRequest, ProposalListQuery, ProposalUpdate

logger = structlog.get_logger(__name__)


@dataclass
class ValidationResult:
    """Result of request validation."""
    is_valid: bool = True
    errors: List[str] = field(default_factory=list)
    request: Optional[BaseModel] = None


def _format_errors(error: PydanticValidationError) -> List[str]:
    return [
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in error.errors()
    ]


def validate_generation_request(data: Dict[str, Any]) -> ValidationResult:
    """Validate a proposal generation request body.

    The body uses camelCase keys. The requesting user is read from
    ``userId`` (or ``createdById``). A custom discount must have a positive
    amount and a reason.

    Args:
        data: Raw request body

    Returns:
        ValidationResult with is_valid, errors, and the parsed request
    """
    if not isinstance(data, dict):
        return ValidationResult(is_valid=False, errors=["Request body must be a JSON object"])

    payload = dict(data)
    if "createdById" not in payload and payload.get("userId"):
        payload["createdById"] = payload["userId"]

    errors: List[str] = []

    discount = payload.get("customDiscount")
    if isinstance(discount, dict):
        amount = discount.get("amount")
        if isinstance(amount, (int, float)) and not isinstance(amount, bool) and amount <= 0:
            errors.append("customDiscount.amount: must be greater than 0")

    try:
        request = ProposalGenerationRequest.model_validate(payload)
    except PydanticValidationError as e:
        errors.extend(_format_errors(e))
        request = None

    if errors:
        logger.info("generation_request_invalid", errors=errors)
        return ValidationResult(is_valid=False, errors=errors)

    return ValidationResult(is_valid=True, errors=[], request=request)


def validate_list_query(params: Dict[str, Any]) -> ValidationResult:
    """Validate proposal list filters.

    Query string values arrive as strings; page and limit are coerced
    to integers. Empty values are treated as absent.
    """
    cleaned = {key: value for key, value in (params or {}).items() if value not in (None, "")}

    try:
        query = ProposalListQuery.model_validate(cleaned)
    except PydanticValidationError as e:
        errors = _format_errors(e)
        logger.info("list_query_invalid", errors=errors)
        return ValidationResult(is_valid=False, errors=errors)

    return ValidationResult(is_valid=True, errors=[], request=query)


def validate_update_request(data: Dict[str, Any]) -> ValidationResult:
    """Validate a proposal update body (proposalId is not part of the update)."""
    if not isinstance(data, dict):
        return ValidationResult(is_valid=False, errors=["Request body must be a JSON object"])

    payload = {key: value for key, value in data.items() if key != "proposalId"}

    try:
        update = ProposalUpdate.model_validate(payload)
    except PydanticValidationError as e:
        errors = _format_errors(e)
        logger.info("update_request_invalid", errors=errors)
        return ValidationResult(is_valid=False, errors=errors)

    return ValidationResult(is_valid=True, errors=[], request=update)
