"""
Tests for Finance Tracker models

Test strategy:
1. Unit tests for request validation (what is rejected before storage)
2. Response shapes (camelCase, derived operation type)
3. Ledger event models and settings
"""

import pytest
from datetime import datetime
from decimal import Decimal
from uuid import uuid4

from pydantic import ValidationError

from finance_tracker.config import DatabaseSettings, JwtSettings
from finance_tracker.models.finance import (
    Account,
    AccountCreateRequest,
    AccountType,
    CategoryCreateRequest,
    LoginRequest,
    OperationType,
    RegisterRequest,
    Transaction,
    TransactionCreateRequest,
    TransactionDto,
)
from finance_tracker.models.events import (
    EventSeverity,
    LedgerEventBuilder,
    LedgerEventType,
)


def transaction_request(**overrides) -> TransactionCreateRequest:
    data = {
        "accountId": str(uuid4()),
        "categoryId": str(uuid4()),
        "amount": "12.34",
        "timestamp": "2026-02-01T10:00:00",
    }
    data.update(overrides)
    return TransactionCreateRequest.model_validate(data)


class TestTransactionRequests:
    """Tests for transaction request validation."""

    def test_camel_case_payload_is_accepted(self):
        """Test the JSON shape the client sends."""
        request = transaction_request(notes="Lunch")
        assert request.amount == Decimal("12.34")
        assert request.notes == "Lunch"

    def test_negative_amount_is_accepted(self):
        """Test that expenses are negative amounts."""
        assert transaction_request(amount="-12.34").amount == Decimal("-12.34")

    def test_zero_amount_is_rejected(self):
        """Test that a zero amount is rejected."""
        with pytest.raises(ValidationError, match="zero"):
            transaction_request(amount="0")

    def test_sub_penny_amount_is_rejected(self):
        """Test that more than two decimals are rejected."""
        with pytest.raises(ValidationError):
            transaction_request(amount="0.001")

    def test_notes_length_limit(self):
        """Test that notes over 500 characters are rejected."""
        transaction_request(notes="x" * 500)
        with pytest.raises(ValidationError):
            transaction_request(notes="x" * 501)

    def test_missing_account_is_rejected(self):
        """Test that accountId is required."""
        with pytest.raises(ValidationError):
            TransactionCreateRequest.model_validate({
                "categoryId": str(uuid4()),
                "amount": "1.00",
                "timestamp": "2026-02-01T10:00:00",
            })


class TestAccountAndCategoryRequests:
    """Tests for account and category request validation."""

    def test_account_type_must_be_known(self):
        """Test that only Cash and Bank are valid."""
        assert AccountCreateRequest(name="Wallet", accountType="Cash").account_type == AccountType.CASH
        with pytest.raises(ValidationError):
            AccountCreateRequest(name="Wallet", accountType="Crypto")

    def test_name_is_stripped_and_required(self):
        """Test that blank names are rejected after stripping."""
        assert CategoryCreateRequest(name="  Food  ").name == "Food"
        with pytest.raises(ValidationError):
            CategoryCreateRequest(name="   ")

    def test_name_length_limit(self):
        """Test that names over 100 characters are rejected."""
        with pytest.raises(ValidationError):
            CategoryCreateRequest(name="n" * 101)

    def test_account_balance_defaults_to_zero(self):
        """Test the default opening balance."""
        assert AccountCreateRequest(name="Wallet", accountType="Bank").balance == Decimal("0.00")


class TestAuthRequests:
    """Tests for login and registration requests."""

    def test_login_requires_valid_email(self):
        """Test that malformed emails are rejected."""
        with pytest.raises(ValidationError):
            LoginRequest(email="not-an-email", password="x")

    def test_register_requires_six_character_password(self):
        """Test the minimum password length."""
        with pytest.raises(ValidationError):
            RegisterRequest(email="gina@finance.io", password="12345")


class TestResponses:
    """Tests for DTOs returned by the API."""

    def test_operation_type_from_sign(self):
        """Test that the label is derived from the amount's sign."""
        assert OperationType.from_amount(Decimal("-0.01")) == OperationType.EXPENSE
        assert OperationType.from_amount(Decimal("0.01")) == OperationType.INCOME

    def test_transaction_dto_serializes_camel_case(self):
        """Test the JSON the client reads."""
        transaction = Transaction(
            account_id=uuid4(),
            category_id=uuid4(),
            amount=Decimal("-7.50"),
            timestamp=datetime(2026, 2, 1, 10, 0, 0),
        )

        data = TransactionDto.from_transaction(transaction).model_dump(mode="json", by_alias=True)

        assert data["operationType"] == "Expense"
        assert data["accountId"] == str(transaction.account_id)
        assert data["categoryId"] == str(transaction.category_id)
        assert data["notes"] is None

    def test_entities_reject_long_names(self):
        """Test that stored entities carry the same limits."""
        with pytest.raises(ValidationError):
            Account(user_id=uuid4(), name="n" * 101, account_type=AccountType.CASH)


class TestLedgerEvents:
    """Tests for ledger event models."""

    def test_balance_target_missing_is_a_warning(self):
        """Test that a missing ledger target is logged loudly."""
        account_id = uuid4()
        event = LedgerEventBuilder.balance_target_missing(
            account_id=account_id, delta="5.00", correlation_id=None
        )

        assert event.event_type == LedgerEventType.BALANCE_TARGET_MISSING
        assert event.severity == EventSeverity.WARNING
        assert event.entity_id == account_id

    def test_to_log_dict_is_flat_and_serializable(self):
        """Test the structured log payload."""
        correlation_id = uuid4()
        event = LedgerEventBuilder.write_rolled_back(
            operation="create_transaction",
            error_message="boom",
            correlation_id=correlation_id,
        )

        log_dict = event.to_log_dict()

        assert log_dict["event_type"] == "write_rolled_back"
        assert log_dict["correlation_id"] == str(correlation_id)
        assert log_dict["error_message"] == "boom"


class TestSettings:
    """Tests for configuration models."""

    def test_database_url_needs_async_driver(self):
        """Test that a sync driver URL is rejected."""
        with pytest.raises(ValidationError):
            DatabaseSettings(url="postgresql://localhost/finance")
        assert DatabaseSettings(url="postgresql+asyncpg://localhost/finance").is_sqlite is False

    def test_jwt_secret_minimum_length(self):
        """Test that short signing keys are rejected."""
        with pytest.raises(ValidationError):
            JwtSettings(secret_key="too-short")
