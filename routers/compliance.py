"""
Compliance API Router
ComplianceNFT status for a wallet, read from chain
"""

from fastapi import APIRouter, Depends, HTTPException, status
from typing import Annotated, Optional
import logging

from compliance_service import Web3ComplianceOracle, derive_compliance_status, expires_soon
from deps import get_compliance_oracle
from exceptions import ComplianceOracleError
from request_service import is_valid_address
from schemas import ComplianceStatusOut

log = logging.getLogger(__name__)
compliance_router = APIRouter(prefix="/compliance", tags=["compliance"])


@compliance_router.get("/{address}", response_model=ComplianceStatusOut, response_model_by_alias=True)
async def get_compliance_status(
    address: str,
    oracle: Annotated[Optional[Web3ComplianceOracle], Depends(get_compliance_oracle)],
):
    """UNVERIFIED / PROCESSING / VERIFIED / EXPIRED plus an expiry warning flag"""
    if not is_valid_address(address):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid Ethereum address")
    if oracle is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Compliance oracle not configured")

    try:
        snapshot = await oracle.read(address)
    except ComplianceOracleError:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Compliance oracle unavailable")

    compliance_status = derive_compliance_status(snapshot.token_id, snapshot.is_compliant, snapshot.valid_until)
    return ComplianceStatusOut(
        address=address,
        token_id=str(snapshot.token_id or 0),
        is_compliant=snapshot.is_compliant,
        valid_until=snapshot.valid_until,
        status=compliance_status.value,
        expires_soon=expires_soon(compliance_status, snapshot.valid_until),
    )
