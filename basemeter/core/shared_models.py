"""Shared models for basemeter."""

from enum import Enum


class FailureKind(str, Enum):
    """Why a ledger operation was refused.

    Ledger operations never raise for bad input; they return a result tagged
    with one of these kinds instead.
    """

    INVALID_INPUT = "invalid_input"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"


class OrderStatus(str, Enum):
    """Order lifecycle status."""

    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    CLOSED = "closed"
