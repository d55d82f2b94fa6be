# deps.py
# Dependency injections for routes: DB session, settings, admin gate,
# notifier, compliance oracle and the request lifecycle service.

import logging
from typing import Annotated, AsyncGenerator, Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from auth_gate import AdminProof, AuthorizationGate, build_authorization_gate
from compliance_service import Web3ComplianceOracle
from config import Settings, settings as app_settings
from database import SessionLocal
from notification_service import TelegramNotifier
from request_service import RequestLifecycleService, TransitionPolicy

log = logging.getLogger(__name__)


# -----------------------
#  DATABASE DEPENDENCY
# -----------------------
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with SessionLocal() as session:
        yield session

SessionDep = Annotated[AsyncSession, Depends(get_db)]


# -----------------------
#  SETTINGS
# -----------------------
def get_settings() -> Settings:
    return app_settings

SettingsDep = Annotated[Settings, Depends(get_settings)]


# -----------------------
#  COLLABORATORS
# -----------------------
def get_authorization_gate(settings: SettingsDep) -> AuthorizationGate:
    return build_authorization_gate(settings)


def get_notifier(settings: SettingsDep) -> TelegramNotifier:
    return TelegramNotifier.from_settings(settings)


def get_compliance_oracle(settings: SettingsDep) -> Optional[Web3ComplianceOracle]:
    return Web3ComplianceOracle.from_settings(settings)


def get_admin_proof(
    x_admin_signature: Annotated[Optional[str], Header()] = None,
    x_admin_timestamp: Annotated[Optional[str], Header()] = None,
) -> Optional[AdminProof]:
    """Signature headers used by the signature gate; ignored by the static gate"""
    if not x_admin_signature or not x_admin_timestamp:
        return None
    try:
        timestamp = int(x_admin_timestamp)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid X-Admin-Timestamp header")
    return AdminProof(signature=x_admin_signature, timestamp=timestamp)

AdminProofDep = Annotated[Optional[AdminProof], Depends(get_admin_proof)]


def get_request_service(
    db: SessionDep,
    settings: SettingsDep,
    gate: Annotated[AuthorizationGate, Depends(get_authorization_gate)],
    notifier: Annotated[TelegramNotifier, Depends(get_notifier)],
) -> RequestLifecycleService:
    return RequestLifecycleService(
        db=db,
        gate=gate,
        notifier=notifier,
        transition_policy=TransitionPolicy(settings.STATUS_TRANSITION_POLICY),
        default_token=settings.DEFAULT_CASH_TOKEN,
    )

RequestServiceDep = Annotated[RequestLifecycleService, Depends(get_request_service)]
