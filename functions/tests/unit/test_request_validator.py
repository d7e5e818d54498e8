"""Unit tests for proposal request validation."""

import pytest

from models.pricing import MaterialGrade
from validators.request_validator import (
    validate_generation_request,
    validate_list_query,
    validate_update_request,
)


class TestValidateGenerationRequest:
    """Tests for validate_generation_request."""

    def test_minimal_request(self):
        result = validate_generation_request({"customerId": "cust-001", "createdById": "user-123"})

        assert result.is_valid
        assert result.errors == []
        assert result.request.customer_id == "cust-001"
        assert result.request.created_by_id == "user-123"
        assert result.request.material_grade is None

    def test_user_id_is_creator(self):
        result = validate_generation_request({"customerId": "cust-001", "userId": "user-9"})

        assert result.is_valid
        assert result.request.created_by_id == "user-9"

    def test_full_request(self):
        result = validate_generation_request({
            "customerId": "cust-001",
            "userId": "user-123",
            "materialGrade": "premium",
            "customDiscount": {"amount": 250, "reason": "Storm season promo"},
            "includeInsuranceAssistance": True,
            "urgencyLevel": "high",
        })

        assert result.is_valid
        assert result.request.material_grade == MaterialGrade.PREMIUM
        assert result.request.custom_discount.amount == 250
        assert result.request.include_insurance_assistance is True

    def test_missing_customer(self):
        result = validate_generation_request({"userId": "user-123"})

        assert not result.is_valid
        assert result.request is None
        assert any(error.startswith("customerId:") for error in result.errors)

    def test_missing_user(self):
        result = validate_generation_request({"customerId": "cust-001"})

        assert not result.is_valid
        assert any(error.startswith("createdById:") for error in result.errors)

    def test_unknown_grade(self):
        result = validate_generation_request({
            "customerId": "cust-001",
            "userId": "user-123",
            "materialGrade": "platinum",
        })

        assert not result.is_valid
        assert any(error.startswith("materialGrade:") for error in result.errors)

    @pytest.mark.parametrize("amount", [0, -50])
    def test_discount_must_be_positive(self, amount):
        result = validate_generation_request({
            "customerId": "cust-001",
            "userId": "user-123",
            "customDiscount": {"amount": amount, "reason": "Oops"},
        })

        assert not result.is_valid
        assert "customDiscount.amount: must be greater than 0" in result.errors

    def test_discount_requires_reason(self):
        result = validate_generation_request({
            "customerId": "cust-001",
            "userId": "user-123",
            "customDiscount": {"amount": 100},
        })

        assert not result.is_valid
        assert any(error.startswith("customDiscount.reason:") for error in result.errors)

    def test_errors_are_collected(self):
        result = validate_generation_request({"materialGrade": "platinum"})

        assert not result.is_valid
        assert len(result.errors) == 3

    def test_non_object_body(self):
        result = validate_generation_request(["cust-001"])

        assert not result.is_valid
        assert result.errors == ["Request body must be a JSON object"]


class TestValidateListQuery:
    """Tests for validate_list_query."""

    def test_defaults(self):
        result = validate_list_query({})

        assert result.is_valid
        assert result.request.page == 1
        assert result.request.limit == 20
        assert result.request.sort_by.value == "createdAt"
        assert result.request.sort_order.value == "desc"

    def test_query_string_values(self):
        result = validate_list_query({
            "page": "3",
            "limit": "10",
            "status": "sent",
            "customerId": "cust-001",
            "sortBy": "totalPrice",
            "sortOrder": "asc",
        })

        assert result.is_valid
        assert result.request.page == 3
        assert result.request.limit == 10
        assert result.request.offset == 20
        assert result.request.status.value == "sent"
        assert result.request.customer_id == "cust-001"

    def test_empty_values_ignored(self):
        result = validate_list_query({"status": "", "customerId": None, "page": "2"})

        assert result.is_valid
        assert result.request.status is None
        assert result.request.customer_id is None

    @pytest.mark.parametrize("params", [
        {"limit": "101"},
        {"page": "0"},
        {"status": "archived"},
        {"sortBy": "customerName"},
        {"page": "two"},
    ])
    def test_invalid(self, params):
        result = validate_list_query(params)

        assert not result.is_valid
        assert result.request is None
        assert len(result.errors) == 1


class TestValidateUpdateRequest:
    """Tests for validate_update_request."""

    def test_proposal_id_is_not_an_update(self):
        result = validate_update_request({"proposalId": "prop-doc-1", "status": "sent"})

        assert result.is_valid
        assert result.request.model_dump(by_alias=True, exclude_unset=True) == {"status": "sent"}

    def test_content_and_dates(self):
        result = validate_update_request({
            "executiveSummary": "Updated summary",
            "validUntil": "2026-08-01T00:00:00Z",
            "estimatedDuration": 3,
        })

        assert result.is_valid
        assert result.request.executive_summary == "Updated summary"
        assert result.request.valid_until.year == 2026

    @pytest.mark.parametrize("data", [
        {"discountAmount": -50},
        {"status": "archived"},
        {"signedByEmail": "not-an-email"},
        {"estimatedDuration": 0},
        {"title": ""},
    ])
    def test_invalid(self, data):
        result = validate_update_request(data)

        assert not result.is_valid
        assert result.errors

    def test_non_object_body(self):
        result = validate_update_request("status=sent")

        assert not result.is_valid
        assert result.errors == ["Request body must be a JSON object"]
