"""
Pairing endpoints.
"""

from fastapi import APIRouter, Depends, Request, Response

from pairing_api.exceptions import ServiceUnavailableError
from pairing_api.middleware.correlation import SESSION_ID_HEADER
from pairing_api.pairing.service import PairingService
from pairing_api.utils.models import (
    ErrorResponse,
    RequestCodeRequest,
    RequestCodeResponse,
    SessionStatusResponse,
)

router = APIRouter(tags=["pairing"])


def get_pairing_service(request: Request) -> PairingService:
    service = getattr(request.app.state, "pairing_service", None)
    if service is None:
        raise ServiceUnavailableError("Pairing service is starting up", retry_after=5)
    return service


@router.post(
    "/request-code",
    response_model=RequestCodeResponse,
    response_model_by_alias=True,
    responses={
        429: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def request_code(
    body: RequestCodeRequest,
    response: Response,
    service: PairingService = Depends(get_pairing_service),
):
    """
    Start pairing a WhatsApp account.

    Returns the session id to poll and the pairing code the user enters under
    WhatsApp > Linked devices > Link with phone number. A number that cannot
    be paired is answered with 200 and `{"success": false, "error": ...}`.
    """
    result = await service.request_code(body.phone)
    response.headers[SESSION_ID_HEADER] = result.session_id
    return RequestCodeResponse(session_id=result.session_id, code=result.code)


@router.get(
    "/session-status/{session_id}",
    response_model=SessionStatusResponse,
    response_model_exclude_none=True,
)
async def session_status(
    session_id: str,
    response: Response,
    service: PairingService = Depends(get_pairing_service),
):
    """Poll a pairing session; the session string is included once connected."""
    response.headers[SESSION_ID_HEADER] = session_id
    result = service.get_status(session_id)
    return SessionStatusResponse(status=result.status.value, session=result.session)
