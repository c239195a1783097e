"""Ownership validation package."""

from finance_tracker.validation.ownership import OwnershipValidator

__all__ = ["OwnershipValidator"]
