"""API routes for notification provider maintenance."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from ..schemas.notifications import ProviderTestRequest, ProviderTestResponse
from ..services.notifications import get_notification_dispatcher
from .dependencies import require_admin_token

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.post("/providers/{provider_id}/test", response_model=ProviderTestResponse)
def send_provider_test(
    provider_id: str,
    payload: ProviderTestRequest,
    *,
    admin=Depends(require_admin_token),
) -> ProviderTestResponse:
    dispatcher = get_notification_dispatcher()
    try:
        result = dispatcher.send_test_message(provider_id, payload.phone, payload.message)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    return ProviderTestResponse(
        success=result.success,
        provider_name=result.provider_name,
        response=result.response,
        error=result.error,
    )


__all__ = ["router", "send_provider_test"]
