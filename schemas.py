# schemas.py
# Pydantic models for request/response validation and serialization.

from datetime import datetime
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class _ApiModel(BaseModel):
    # camelCase on the wire, snake_case in code
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


# ---------------------------------------------------------------------------
#  Request bodies. Everything is optional here; presence and shape are
#  checked by RequestLifecycleService so that problems surface as 400s.
# ---------------------------------------------------------------------------

class VerificationSubmit(_ApiModel):
    address: Optional[str] = None
    kind: Optional[str] = None
    fields: Optional[Any] = None


class CashSubmit(_ApiModel):
    address: Optional[str] = None
    direction: Optional[str] = None
    amount_wei: Optional[Union[str, int]] = Field(None, alias="amountWei")
    bank_ref: Optional[str] = Field(None, alias="bankRef")
    token: Optional[str] = None


class StatusUpdate(_ApiModel):
    status: Optional[str] = None
    admin_address: Optional[str] = Field(None, alias="adminAddress")


class FormValues(_ApiModel):
    values: Dict[str, Any] = Field(default_factory=dict)


class FormSubmit(FormValues):
    address: Optional[str] = None


# ---------------------------------------------------------------------------
#  Responses
# ---------------------------------------------------------------------------

class SubmitResponse(_ApiModel):
    success: bool = True
    request_id: str = Field(..., alias="requestId")
    status: str


class UserSummary(_ApiModel):
    username: Optional[str] = None
    email: Optional[str] = None
    ens: Optional[str] = None


class VerificationRequestOut(_ApiModel):
    id: str
    address: str
    kind: str
    fields: Dict[str, Any]
    status: str
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")
    user: Optional[UserSummary] = None


class CashRequestOut(_ApiModel):
    id: str
    address: str
    direction: str
    token: str
    amount_wei: str = Field(..., alias="amountWei")
    bank_ref: Optional[str] = Field(None, alias="bankRef")
    status: str
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")
    user: Optional[UserSummary] = None


class FormValidationResult(_ApiModel):
    valid: bool
    errors: Dict[str, str] = Field(default_factory=dict)


class ComplianceStatusOut(_ApiModel):
    address: str
    token_id: str = Field(..., alias="tokenId")
    is_compliant: bool = Field(..., alias="isCompliant")
    valid_until: int = Field(..., alias="validUntil")
    status: str
    expires_soon: bool = Field(..., alias="expiresSoon")
