"""
Request Lifecycle Service - submission, listing and admin review of
verification (KYC/KYB) requests and fiat cash-in / cash-out requests.

Lifecycle:
    PENDING  --admin-->  APPROVED | REJECTED | CANCELED

Whether a reviewed request may be moved again is decided by the configured
TransitionPolicy. PERMISSIVE accepts any recognized status from any state;
STRICT only allows the PENDING -> terminal step.
"""

import logging
import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from sqlalchemy.ext.asyncio import AsyncSession

import crud
from config import ADDRESS_PATTERN
from auth_gate import AdminProof, AuthorizationGate
from exceptions import (
    AdminRequiredError,
    InvalidRequestError,
    RequestNotFoundError,
    TransitionNotAllowedError,
)
from models import (
    CashDirection,
    CashRequest,
    RequestStatus,
    TERMINAL_STATUSES,
    VerificationKind,
    VerificationRequest,
)
from notification_service import format_cash_message, format_verification_message
from schemas import CashRequestOut, UserSummary, VerificationRequestOut

log = logging.getLogger(__name__)

AMOUNT_RE = re.compile(r"^[0-9]+$")
# width of the amount_wei column (uint256 in decimal)
MAX_AMOUNT_DIGITS = 78

STATUS_VALUES = {s.value for s in RequestStatus}
KIND_VALUES = {k.value for k in VerificationKind}
DIRECTION_VALUES = {d.value for d in CashDirection}


class TransitionPolicy(str, Enum):
    PERMISSIVE = "permissive"
    STRICT = "strict"

    def check(self, current: str, new: str) -> None:
        """Raise TransitionNotAllowedError when `current -> new` is not allowed"""
        if self is TransitionPolicy.PERMISSIVE:
            return
        if current != RequestStatus.PENDING.value or RequestStatus(new) not in TERMINAL_STATUSES:
            raise TransitionNotAllowedError(f"Cannot change status from {current} to {new}")


def is_valid_address(address: Optional[str]) -> bool:
    return bool(address) and ADDRESS_PATTERN.match(address) is not None


# ---------------------------------------------------------------------------
#  Serialization
# ---------------------------------------------------------------------------

def _user_summary(record) -> UserSummary:
    user = record.user
    if user is None:
        return UserSummary()
    return UserSummary(username=user.username, email=user.email, ens=user.ens)


def serialize_verification(record: VerificationRequest, include_user: bool = False) -> Dict[str, Any]:
    out = VerificationRequestOut(
        id=record.id,
        address=record.address,
        kind=record.kind,
        fields=crud.decode_fields(record.fields),
        status=record.status,
        created_at=record.created_at,
        updated_at=record.updated_at,
        user=_user_summary(record) if include_user else None,
    )
    return out.model_dump(mode="json", by_alias=True, exclude=None if include_user else {"user"})


def serialize_cash(record: CashRequest, include_user: bool = False) -> Dict[str, Any]:
    out = CashRequestOut(
        id=record.id,
        address=record.address,
        direction=record.direction,
        token=record.token,
        amount_wei=record.amount_wei,
        bank_ref=record.bank_ref,
        status=record.status,
        created_at=record.created_at,
        updated_at=record.updated_at,
        user=_user_summary(record) if include_user else None,
    )
    return out.model_dump(mode="json", by_alias=True, exclude=None if include_user else {"user"})


class RequestLifecycleService:
    """One instance per HTTP request; holds that request's DB session."""

    def __init__(
        self,
        db: AsyncSession,
        gate: AuthorizationGate,
        notifier,
        transition_policy: TransitionPolicy = TransitionPolicy.PERMISSIVE,
        default_token: str = "ECOP",
    ):
        self.db = db
        self.gate = gate
        self.notifier = notifier
        self.transition_policy = transition_policy
        self.default_token = default_token

    # ==================== Submission ====================

    async def submit_verification(
        self, address: Optional[str], kind: Optional[str], fields: Optional[Dict[str, Any]]
    ) -> VerificationRequest:
        if not address or not kind or fields is None:
            raise InvalidRequestError("Missing required fields: address, kind, fields")
        if not is_valid_address(address):
            raise InvalidRequestError("Invalid Ethereum address")
        if kind not in KIND_VALUES:
            raise InvalidRequestError("Invalid verification kind. Must be PERSON or INSTITUTION")
        if not isinstance(fields, dict):
            raise InvalidRequestError("Invalid fields. Must be an object")

        await crud.ensure_user(self.db, address)
        record = await crud.create_verification_request(self.db, address=address, kind=kind, fields=fields)
        log.info(f"Verification request created: id={record.id}, kind={kind}, address={address}")

        await self._notify(
            lambda: format_verification_message(kind, address, record.id, datetime.now(timezone.utc))
        )
        return record

    async def submit_cash(
        self,
        address: Optional[str],
        direction: Optional[str],
        amount_wei: Optional[Union[str, int]],
        bank_ref: Optional[str] = None,
        token: Optional[str] = None,
    ) -> CashRequest:
        if not address or not direction or amount_wei is None or amount_wei == "":
            raise InvalidRequestError("Missing required fields: address, direction, amountWei")
        if not is_valid_address(address):
            raise InvalidRequestError("Invalid Ethereum address")
        if direction not in DIRECTION_VALUES:
            raise InvalidRequestError("Invalid direction. Must be IN or OUT")

        amount_wei = str(amount_wei).strip()
        if not AMOUNT_RE.match(amount_wei):
            raise InvalidRequestError("Invalid amountWei. Must be a positive integer string")
        if len(amount_wei) > MAX_AMOUNT_DIGITS:
            raise InvalidRequestError(f"Invalid amountWei. Must be at most {MAX_AMOUNT_DIGITS} digits")
        if int(amount_wei) <= 0:
            raise InvalidRequestError("Invalid amountWei. Must be a positive integer string")

        token = token or self.default_token

        user = await crud.ensure_user(self.db, address)
        record = await crud.create_cash_request(
            self.db,
            address=address,
            direction=direction,
            token=token,
            amount_wei=amount_wei,
            bank_ref=bank_ref,
        )
        log.info(f"Cash request created: id={record.id}, direction={direction}, amount={amount_wei} {token}")

        await self._notify(
            lambda: format_cash_message(
                direction=direction,
                user_label=user.username or user.ens,
                address=address,
                amount_wei=amount_wei,
                token=token,
                bank_ref=bank_ref,
                request_id=record.id,
                timestamp=datetime.now(timezone.utc),
            )
        )
        return record

    async def _notify(self, build_message: Callable[[], str]) -> None:
        """Build and send the notification. Failures are logged, never raised."""
        try:
            await self.notifier.notify(build_message())
        except Exception as e:
            log.error(f"Notification dispatch failed: {e}")

    # ==================== Listing ====================

    def _resolve_caller(self, address: Optional[str], proof: Optional[AdminProof]) -> bool:
        is_admin = self.gate.is_admin(address, proof)
        if not is_admin and not address:
            raise InvalidRequestError("Address parameter required for non-admin requests")
        return is_admin

    async def list_verification_requests(
        self, address: Optional[str], proof: Optional[AdminProof] = None
    ) -> Tuple[List[VerificationRequest], bool]:
        """Returns (records, is_admin). Admins see everything, owners their own."""
        is_admin = self._resolve_caller(address, proof)
        records = await crud.list_verification_requests(
            self.db, address=None if is_admin else address, include_user=is_admin
        )
        return records, is_admin

    async def list_cash_requests(
        self,
        address: Optional[str],
        direction: Optional[str] = None,
        status: Optional[str] = None,
        proof: Optional[AdminProof] = None,
    ) -> Tuple[List[CashRequest], bool]:
        is_admin = self._resolve_caller(address, proof)
        # unrecognized filter values are ignored, not rejected
        records = await crud.list_cash_requests(
            self.db,
            address=None if is_admin else address,
            direction=direction if direction in DIRECTION_VALUES else None,
            status=status if status in STATUS_VALUES else None,
            include_user=is_admin,
        )
        return records, is_admin

    # ==================== Review ====================

    async def update_verification_status(
        self, request_id: str, status: Optional[str], admin_address: Optional[str], proof: Optional[AdminProof] = None
    ) -> VerificationRequest:
        self._authorize_review(status, admin_address, proof)
        record = await crud.get_verification_request(self.db, request_id)
        if record is None:
            raise RequestNotFoundError("Verification request not found")
        return await self._apply_status(record, status)

    async def update_cash_status(
        self, request_id: str, status: Optional[str], admin_address: Optional[str], proof: Optional[AdminProof] = None
    ) -> CashRequest:
        self._authorize_review(status, admin_address, proof)
        record = await crud.get_cash_request(self.db, request_id)
        if record is None:
            raise RequestNotFoundError("Cash request not found")
        return await self._apply_status(record, status)

    def _authorize_review(self, status: Optional[str], admin_address: Optional[str], proof: Optional[AdminProof]):
        if not self.gate.is_admin(admin_address, proof):
            log.warning(f"Status update rejected for non-admin caller {admin_address}")
            raise AdminRequiredError()
        if status not in STATUS_VALUES:
            raise InvalidRequestError("Invalid status")

    async def _apply_status(self, record, status: str):
        previous = record.status
        self.transition_policy.check(previous, status)
        record = await crud.set_request_status(self.db, record, status)
        log.info(f"{type(record).__name__} {record.id} status {previous} -> {status}")
        return record
