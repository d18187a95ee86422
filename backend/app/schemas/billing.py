"""API schemas for invoice payment endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..billing import Invoice, ReconciliationReport, SideEffectStatus


class MarkPaidRequest(BaseModel):
    paid_at: Optional[datetime] = Field(alias="paidAt", default=None)
    payment_method: Optional[str] = Field(alias="paymentMethod", default=None)

    model_config = ConfigDict(populate_by_name=True)


class SideEffectOutcomeResponse(BaseModel):
    name: str
    status: SideEffectStatus
    error: Optional[str] = None
    detail: Optional[str] = None


class MarkPaidResponse(BaseModel):
    invoice: Invoice
    already_paid: bool = Field(alias="alreadyPaid")
    reactivated: bool
    previous_expiry: Optional[datetime] = Field(alias="previousExpiry", default=None)
    new_expiry: Optional[datetime] = Field(alias="newExpiry", default=None)
    outcomes: List[SideEffectOutcomeResponse] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_report(cls, report: ReconciliationReport) -> "MarkPaidResponse":
        return cls(
            invoice=report.invoice,
            already_paid=report.already_paid,
            reactivated=report.reactivated,
            previous_expiry=report.previous_expiry,
            new_expiry=report.new_expiry,
            outcomes=[
                SideEffectOutcomeResponse(
                    name=item.name,
                    status=item.status,
                    error=item.error,
                    detail=item.detail,
                )
                for item in report.outcomes
            ],
        )


__all__ = ["MarkPaidRequest", "MarkPaidResponse", "SideEffectOutcomeResponse"]
