"""API routes confirming invoice payments."""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from ..billing import InvoiceNotFound, InvoiceNotPayable, PersistenceError
from ..schemas.billing import MarkPaidRequest, MarkPaidResponse
from ..services.billing import get_reconciliation_service
from .dependencies import require_admin_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/invoices", tags=["invoices"])


@router.post("/{invoice_id}/mark-paid", response_model=MarkPaidResponse)
def mark_invoice_paid(
    invoice_id: str,
    payload: Optional[MarkPaidRequest] = None,
    *,
    admin=Depends(require_admin_token),
) -> MarkPaidResponse:
    payload = payload or MarkPaidRequest()
    service = get_reconciliation_service()
    try:
        report = service.mark_invoice_paid(
            invoice_id,
            paid_at=payload.paid_at,
            payment_method=payload.payment_method,
        )
    except InvoiceNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except InvoiceNotPayable as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except PersistenceError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update invoice",
        ) from exc

    if report.failures:
        logger.warning(
            "Invoice paid with failed side effects",
            extra={"invoice_id": invoice_id, "failed_side_effects": [item.name for item in report.failures]},
        )
    return MarkPaidResponse.from_report(report)


__all__ = ["router", "mark_invoice_paid"]
