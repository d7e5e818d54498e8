"""Pytest configuration and shared fixtures for proposal engine tests."""

import os
import sys
import pytest
from unittest.mock import AsyncMock, MagicMock, patch


# ============================================================================
# Ensure local imports work (models/, services/, config/)
# ============================================================================
#
# Our codebase uses absolute imports like `from models...` / `from services...`.
# This guarantees that `functions/` is importable as the top-level module root.
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)


# ============================================================================
# Firebase Mocks
# ============================================================================

@pytest.fixture
def mock_firestore_client():
    """Mock Firestore client."""
    client = MagicMock()

    # Mock collection and document methods
    collection_mock = MagicMock()
    document_mock = MagicMock()

    # Set up chain: client.collection().document()
    client.collection.return_value = collection_mock
    collection_mock.document.return_value = document_mock

    # Mock async methods
    document_mock.id = "proposal-doc-1"
    document_mock.get = AsyncMock(return_value=MagicMock(
        exists=True,
        id="cust-001",
        to_dict=lambda: {"firstName": "Jane"}
    ))
    document_mock.set = AsyncMock()

    # Mock subcollection
    subcollection_mock = MagicMock()
    document_mock.collection.return_value = subcollection_mock
    subcollection_mock.document.return_value = document_mock

    return client


@pytest.fixture
def mock_firestore_service(mock_firestore_client):
    """Mock FirestoreService with mocked client."""
    from services.firestore_service import FirestoreService

    service = FirestoreService(db=mock_firestore_client)
    return service


# ============================================================================
# LLM Mocks
# ============================================================================

@pytest.fixture
def mock_llm_response():
    """Standard mock LLM response."""
    return {
        "content": "Mock LLM response",
        "tokens_used": 100
    }


@pytest.fixture
def mock_chat_openai():
    """Mock ChatOpenAI client."""
    mock = AsyncMock()
    mock.ainvoke.return_value = MagicMock(
        content="Mock response content",
        response_metadata={"token_usage": {"total_tokens": 100}}
    )
    return mock


@pytest.fixture
def mock_llm_service(mock_chat_openai):
    """Mock LLMService."""
    from services.llm_service import LLMService

    with patch('services.llm_service.ChatOpenAI', return_value=mock_chat_openai):
        service = LLMService(api_key="test-api-key")
        service._client = mock_chat_openai
        return service


@pytest.fixture(autouse=True)
def mock_settings():
    """Mock settings for all tests."""
    with patch('services.llm_service.settings') as mock:
        mock.openai_api_key = "test-api-key"
        mock.llm_model = "gpt-4o"
        mock.llm_temperature = 0.7
        mock.llm_max_tokens = 2000
        mock.llm_timeout_seconds = 60
        mock.llm_max_retries = 1
        mock.use_firebase_emulators = True
        mock.proposal_valid_days = 30
        mock.log_level = "INFO"
        yield mock


# ============================================================================
# Sample Data Fixtures
# ============================================================================

@pytest.fixture
def sample_customer():
    from tests.fixtures.mock_customer_data import make_customer
    return make_customer()


@pytest.fixture
def sample_property():
    """2,000 sq ft single story, 6/12 pitch."""
    from tests.fixtures.mock_customer_data import make_property
    return make_property()


@pytest.fixture
def sample_insurance():
    from tests.fixtures.mock_customer_data import make_insurance
    return make_insurance()


@pytest.fixture
def sample_bundle():
    """Customer bundle with one unclaimed hail event."""
    from tests.fixtures.mock_customer_data import make_bundle
    return make_bundle()


@pytest.fixture
def sample_generation_request():
    from models.proposal import ProposalGenerationRequest
    return ProposalGenerationRequest(customer_id="cust-001", created_by_id="user-123")


@pytest.fixture
def pa_calculator():
    from services.pricing_calculator import PricingCalculator
    return PricingCalculator("PA")
