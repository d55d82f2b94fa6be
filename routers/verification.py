from fastapi import APIRouter, HTTPException, Query, status
from typing import Optional
import logging

from deps import AdminProofDep, RequestServiceDep
from exceptions import RequestServiceError
from request_service import serialize_verification
from schemas import StatusUpdate, SubmitResponse, VerificationSubmit

log = logging.getLogger(__name__)
verification_router = APIRouter(prefix="/verification", tags=["verification"])


@verification_router.post("", response_model=SubmitResponse, response_model_by_alias=True)
async def submit_verification(body: VerificationSubmit, service: RequestServiceDep):
    """
    Submit a KYC (PERSON) or KYB (INSTITUTION) verification request.

    Request body:
    {
        "address": "0x...",
        "kind": "PERSON",
        "fields": {"full_name": "...", ...}
    }
    """
    try:
        record = await service.submit_verification(body.address, body.kind, body.fields)
        return SubmitResponse(request_id=record.id, status=record.status)
    except RequestServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        log.error(f"Error submitting verification request: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")


@verification_router.get("")
async def list_verification_requests(
    service: RequestServiceDep,
    proof: AdminProofDep,
    address: Optional[str] = Query(None),
):
    """Admin sees every request (with owner details); anyone else only their own"""
    try:
        records, is_admin = await service.list_verification_requests(address, proof=proof)
        return {"requests": [serialize_verification(r, include_user=is_admin) for r in records]}
    except RequestServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        log.error(f"Error fetching verification requests: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")


@verification_router.patch("/{request_id}")
async def update_verification_status(
    request_id: str,
    body: StatusUpdate,
    service: RequestServiceDep,
    proof: AdminProofDep,
):
    """[ADMIN ONLY] Set the status of a verification request"""
    try:
        record = await service.update_verification_status(request_id, body.status, body.admin_address, proof=proof)
        return {"success": True, "request": serialize_verification(record)}
    except RequestServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        log.error(f"Error updating verification request {request_id}: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")
