from fastapi import APIRouter, HTTPException, Query, status
from typing import Optional
import logging

from deps import AdminProofDep, RequestServiceDep
from exceptions import RequestServiceError
from request_service import serialize_cash
from schemas import CashSubmit, StatusUpdate, SubmitResponse

log = logging.getLogger(__name__)
cash_router = APIRouter(prefix="/cash", tags=["cash"])


@cash_router.post("", response_model=SubmitResponse, response_model_by_alias=True)
async def submit_cash_request(body: CashSubmit, service: RequestServiceDep):
    """
    Submit a fiat cash-in (IN) or cash-out (OUT) request.

    `amountWei` is the token amount in its smallest unit, as a decimal
    integer string. `token` defaults to the configured stablecoin.
    """
    try:
        record = await service.submit_cash(
            body.address, body.direction, body.amount_wei, bank_ref=body.bank_ref, token=body.token
        )
        return SubmitResponse(request_id=record.id, status=record.status)
    except RequestServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        log.error(f"Error submitting cash request: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")


@cash_router.get("")
async def list_cash_requests(
    service: RequestServiceDep,
    proof: AdminProofDep,
    address: Optional[str] = Query(None),
    direction: Optional[str] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
):
    try:
        records, is_admin = await service.list_cash_requests(
            address, direction=direction, status=status_filter, proof=proof
        )
        return {"requests": [serialize_cash(r, include_user=is_admin) for r in records]}
    except RequestServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        log.error(f"Error fetching cash requests: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")


@cash_router.patch("/{request_id}")
async def update_cash_status(
    request_id: str,
    body: StatusUpdate,
    service: RequestServiceDep,
    proof: AdminProofDep,
):
    """[ADMIN ONLY] Set the status of a cash request"""
    try:
        record = await service.update_cash_status(request_id, body.status, body.admin_address, proof=proof)
        return {"success": True, "request": serialize_cash(record)}
    except RequestServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        log.error(f"Error updating cash request {request_id}: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")
