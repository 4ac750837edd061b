"""Pydantic models for wisdom-coin endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class BalanceResponse(BaseModel):
    wisdom_coins: int
    exempt_from_balance_checks: bool


class TransactionEntry(BaseModel):
    id: int
    amount: int
    reason: str
    description: str
    created_at: datetime


class TransactionHistoryResponse(BaseModel):
    entries: list[TransactionEntry]
    total: int
    page: int
    per_page: int


class PricedActionResponse(BaseModel):
    success: bool = True
    amount: int
    new_balance: int
