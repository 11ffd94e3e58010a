"""
Appointment cancellation API routes.

Thin layer: validation of the request body, then delegation to the
application service. Domain errors are rendered by the global handlers.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Path, status

from api.dependencies import get_cancellation_service
from application.dtos.cancellations import CancelAppointmentRequest
from application.services.cancellation_service import CancellationApplicationService
from core.response import Response, success_response


router = APIRouter(prefix="/appointments", tags=["Cancellations"])


@router.post(
    "/{appointment_id}/cancellation",
    response_model=Response,
    status_code=status.HTTP_201_CREATED,
    summary="Cancel an appointment",
)
async def cancel_appointment(
    payload: CancelAppointmentRequest,
    appointment_id: int = Path(..., ge=1),
    service: CancellationApplicationService = Depends(get_cancellation_service),
):
    """
    Record a cancellation with its computed refund and penalty.

    The gateway refund is scheduled in the background after commit.
    """
    cancellation = await service.cancel(appointment_id, payload)
    return success_response(data=cancellation.model_dump(mode="json"), message="Appointment cancelled")


@router.get(
    "/{appointment_id}/cancellation",
    response_model=Response,
    summary="Get an appointment's cancellation",
)
async def get_cancellation(
    appointment_id: int = Path(..., ge=1),
    service: CancellationApplicationService = Depends(get_cancellation_service),
):
    cancellation = await service.get_cancellation(appointment_id)
    return success_response(data=cancellation.model_dump(mode="json"))
