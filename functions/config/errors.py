"""Guardian proposal engine error handling.

Custom exceptions and error codes for proposal generation.
"""

from typing import Optional, Dict, Any


# Error Codes
class ErrorCode:
    """Error code constants."""
    
    # Validation Errors (1xxx)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_FIELD = "INVALID_FIELD"
    MISSING_FIELD = "MISSING_FIELD"
    
    # Lookup Errors (2xxx)
    CUSTOMER_NOT_FOUND = "CUSTOMER_NOT_FOUND"
    PROPOSAL_NOT_FOUND = "PROPOSAL_NOT_FOUND"
    PROPOSAL_LOCKED = "PROPOSAL_LOCKED"
    
    # Generation Errors (3xxx)
    PROPOSAL_GENERATION_FAILED = "PROPOSAL_GENERATION_FAILED"
    CONTENT_GENERATION_FAILED = "CONTENT_GENERATION_FAILED"
    
    # Firestore Errors (5xxx)
    FIRESTORE_ERROR = "FIRESTORE_ERROR"
    FIRESTORE_WRITE_FAILED = "FIRESTORE_WRITE_FAILED"
    
    # LLM Errors (6xxx)
    LLM_ERROR = "LLM_ERROR"
    LLM_RATE_LIMIT = "LLM_RATE_LIMIT"
    LLM_CONTEXT_TOO_LONG = "LLM_CONTEXT_TOO_LONG"
    LLM_NOT_CONFIGURED = "LLM_NOT_CONFIGURED"


class ProposalEngineError(Exception):
    """Base exception for proposal engine errors.
    
    Provides structured error information for API responses.
    
    Attributes:
        code: Error code from ErrorCode constants
        message: Human-readable error message
        details: Additional error context
    """
    
    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        """Initialize ProposalEngineError.
        
        Args:
            code: Error code from ErrorCode constants
            message: Human-readable error message
            details: Additional error context
        """
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for API response.
        
        Returns:
            Dictionary with code, message, and details.
        """
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }
    
    def __repr__(self) -> str:
        return f"ProposalEngineError(code={self.code!r}, message={self.message!r})"


class ValidationError(ProposalEngineError):
    """Validation-specific error."""
    
    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict] = None):
        super().__init__(
            code=ErrorCode.VALIDATION_ERROR,
            message=message,
            details={**(details or {}), "field": field} if field else details
        )


CUSTOMER_NOT_FOUND_MESSAGE = "Customer not found"


class CustomerNotFoundError(ProposalEngineError):
    """Raised when the CRM has no customer with the requested ID."""

    def __init__(self, customer_id: str):
        super().__init__(
            code=ErrorCode.CUSTOMER_NOT_FOUND,
            message=CUSTOMER_NOT_FOUND_MESSAGE,
            details={"customer_id": customer_id}
        )
        self.customer_id = customer_id


class ContentGenerationError(ProposalEngineError):
    """A content strategy could not produce proposal prose."""
    
    def __init__(
        self,
        message: str,
        strategy: str,
        details: Optional[Dict] = None
    ):
        super().__init__(
            code=ErrorCode.CONTENT_GENERATION_FAILED,
            message=message,
            details={**(details or {}), "strategy": strategy}
        )
        self.strategy = strategy
