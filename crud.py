# crud.py
# Database operations for users, verification requests and cash requests.
# The verification `fields` mapping is (de)serialized here and nowhere else.

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

import models


def encode_fields(fields: Dict[str, Any]) -> str:
    return json.dumps(fields, separators=(",", ":"), default=str)


def decode_fields(raw: Optional[str]) -> Dict[str, Any]:
    if not raw:
        return {}
    return json.loads(raw)


# -----------------------
#  USERS
# -----------------------
async def get_user(db: AsyncSession, address: str) -> Optional[models.User]:
    result = await db.execute(select(models.User).filter(models.User.address == address))
    return result.scalar_one_or_none()


async def ensure_user(db: AsyncSession, address: str) -> models.User:
    """
    Create the user row for `address` if it does not exist yet.

    INSERT ... ON CONFLICT DO NOTHING, so two first submissions for the same
    wallet racing each other both succeed and an existing row is left as is.
    """
    insert = pg_insert if db.get_bind().dialect.name == "postgresql" else sqlite_insert
    stmt = insert(models.User).values(address=address).on_conflict_do_nothing(index_elements=["address"])
    await db.execute(stmt)
    return await get_user(db, address)


# -----------------------
#  VERIFICATION REQUESTS
# -----------------------
async def create_verification_request(
    db: AsyncSession, address: str, kind: str, fields: Dict[str, Any]
) -> models.VerificationRequest:
    db_request = models.VerificationRequest(
        address=address,
        kind=kind,
        fields=encode_fields(fields),
        status=models.RequestStatus.PENDING.value,
    )
    db.add(db_request)
    await db.commit()
    await db.refresh(db_request)
    return db_request


async def get_verification_request(db: AsyncSession, request_id: str) -> Optional[models.VerificationRequest]:
    result = await db.execute(
        select(models.VerificationRequest).filter(models.VerificationRequest.id == request_id)
    )
    return result.scalar_one_or_none()


async def list_verification_requests(
    db: AsyncSession, address: Optional[str] = None, include_user: bool = False
) -> List[models.VerificationRequest]:
    query = select(models.VerificationRequest)
    if address is not None:
        query = query.filter(models.VerificationRequest.address == address)
    if include_user:
        query = query.options(selectinload(models.VerificationRequest.user))
    query = query.order_by(models.VerificationRequest.created_at.desc())
    result = await db.execute(query)
    return list(result.scalars().all())


# -----------------------
#  CASH REQUESTS
# -----------------------
async def create_cash_request(
    db: AsyncSession,
    address: str,
    direction: str,
    token: str,
    amount_wei: str,
    bank_ref: Optional[str] = None,
) -> models.CashRequest:
    db_request = models.CashRequest(
        address=address,
        direction=direction,
        token=token,
        amount_wei=amount_wei,
        bank_ref=bank_ref,
        status=models.RequestStatus.PENDING.value,
    )
    db.add(db_request)
    await db.commit()
    await db.refresh(db_request)
    return db_request


async def get_cash_request(db: AsyncSession, request_id: str) -> Optional[models.CashRequest]:
    result = await db.execute(select(models.CashRequest).filter(models.CashRequest.id == request_id))
    return result.scalar_one_or_none()


async def list_cash_requests(
    db: AsyncSession,
    address: Optional[str] = None,
    direction: Optional[str] = None,
    status: Optional[str] = None,
    include_user: bool = False,
) -> List[models.CashRequest]:
    query = select(models.CashRequest)
    if address is not None:
        query = query.filter(models.CashRequest.address == address)
    if direction is not None:
        query = query.filter(models.CashRequest.direction == direction)
    if status is not None:
        query = query.filter(models.CashRequest.status == status)
    if include_user:
        query = query.options(selectinload(models.CashRequest.user))
    query = query.order_by(models.CashRequest.created_at.desc())
    result = await db.execute(query)
    return list(result.scalars().all())


# -----------------------
#  STATUS
# -----------------------
async def set_request_status(db: AsyncSession, db_request, status: str):
    """Blind overwrite of status; last writer wins."""
    db_request.status = status
    db_request.updated_at = datetime.now(timezone.utc)
    db.add(db_request)
    await db.commit()
    await db.refresh(db_request)
    return db_request
