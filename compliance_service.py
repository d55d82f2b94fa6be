"""
Compliance Service - reads a wallet's ComplianceNFT state and derives the
status shown to users and admins.

Derivation:
    no token (absent or id 0)            -> UNVERIFIED
    not compliant and validUntil > 0     -> EXPIRED
    compliant                            -> VERIFIED
    otherwise                            -> PROCESSING
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from web3 import AsyncHTTPProvider, AsyncWeb3, Web3

from config import Settings
from exceptions import ComplianceOracleError

log = logging.getLogger(__name__)

EXPIRY_WARNING_SECONDS = 30 * 24 * 60 * 60

COMPLIANCE_NFT_ABI = [
    {
        "name": "tokenOf",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "owner", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "name": "isCompliant",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "account", "type": "address"}],
        "outputs": [{"name": "", "type": "bool"}],
    },
    {
        "name": "validUntil",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "account", "type": "address"}],
        "outputs": [{"name": "", "type": "uint64"}],
    },
]


class ComplianceStatus(str, Enum):
    UNVERIFIED = "UNVERIFIED"
    PROCESSING = "PROCESSING"
    VERIFIED = "VERIFIED"
    EXPIRED = "EXPIRED"


@dataclass(frozen=True)
class ComplianceSnapshot:
    token_id: Optional[int]
    is_compliant: bool
    valid_until: int


def derive_compliance_status(token_id: Optional[int], is_compliant: bool, valid_until: Optional[int]) -> ComplianceStatus:
    if not token_id:
        return ComplianceStatus.UNVERIFIED
    if not is_compliant and valid_until and valid_until > 0:
        return ComplianceStatus.EXPIRED
    if is_compliant:
        return ComplianceStatus.VERIFIED
    return ComplianceStatus.PROCESSING


def expires_soon(status: ComplianceStatus, valid_until: Optional[int], now: Optional[float] = None) -> bool:
    """Advisory only: VERIFIED with less than 30 days left"""
    if status is not ComplianceStatus.VERIFIED or not valid_until:
        return False
    now = time.time() if now is None else now
    return valid_until - int(now) < EXPIRY_WARNING_SECONDS


class Web3ComplianceOracle:
    """Read-only view of the ComplianceNFT contract"""

    def __init__(self, rpc_url: str, contract_address: str, w3: Optional[AsyncWeb3] = None):
        self.w3 = w3 or AsyncWeb3(AsyncHTTPProvider(rpc_url))
        self.contract = self.w3.eth.contract(
            address=Web3.to_checksum_address(contract_address),
            abi=COMPLIANCE_NFT_ABI,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> Optional["Web3ComplianceOracle"]:
        if not settings.compliance_oracle_configured:
            return None
        return cls(settings.RPC_URL, settings.COMPLIANCE_NFT_ADDRESS)

    async def read(self, address: str) -> ComplianceSnapshot:
        account = Web3.to_checksum_address(address)
        try:
            token_id = await self.contract.functions.tokenOf(account).call()
            is_compliant = await self.contract.functions.isCompliant(account).call()
            valid_until = await self.contract.functions.validUntil(account).call()
        except Exception as e:
            log.error(f"ComplianceNFT read failed for {address}: {e}")
            raise ComplianceOracleError(str(e)) from e
        return ComplianceSnapshot(token_id=int(token_id), is_compliant=bool(is_compliant), valid_until=int(valid_until))
