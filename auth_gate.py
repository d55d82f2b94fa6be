"""
Admin authorization for the request review endpoints.

Two gates share one interface:

- StaticAddressGate: the caller asserts an address and is admin when it is
  exactly the configured ADMIN_ADDRESS. Nothing is proven.
- SignatureVerifiedGate: the caller additionally signs a challenge that
  embeds the address and a unix timestamp (EIP-191 personal_sign). The
  signer recovered from the signature must be the configured admin and the
  timestamp must be recent.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from eth_account import Account
from eth_account.messages import encode_defunct

from config import Settings

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class AdminProof:
    """Signature material sent alongside the claimed admin address"""
    signature: str
    timestamp: int


def build_admin_challenge(prefix: str, address: str, timestamp: int) -> str:
    return f"{prefix}\nAddress: {address}\nTimestamp: {timestamp}"


class AuthorizationGate(ABC):
    """Decides whether a caller may list everything and mutate statuses"""

    def __init__(self, admin_address: str):
        self.admin_address = admin_address

    @abstractmethod
    def is_admin(self, address: Optional[str], proof: Optional[AdminProof] = None) -> bool:
        ...


class StaticAddressGate(AuthorizationGate):
    """Case-sensitive comparison against the configured admin address"""

    def is_admin(self, address: Optional[str], proof: Optional[AdminProof] = None) -> bool:
        return address is not None and address == self.admin_address


class SignatureVerifiedGate(AuthorizationGate):

    def __init__(self, admin_address: str, message_prefix: str, max_age_seconds: int, clock=time.time):
        super().__init__(admin_address)
        self.message_prefix = message_prefix
        self.max_age_seconds = max_age_seconds
        self._clock = clock

    def is_admin(self, address: Optional[str], proof: Optional[AdminProof] = None) -> bool:
        if not address or proof is None:
            return False
        if address.lower() != self.admin_address.lower():
            return False

        age = abs(int(self._clock()) - int(proof.timestamp))
        if age > self.max_age_seconds:
            log.warning(f"Admin signature for {address} rejected: timestamp is {age}s old")
            return False

        message = encode_defunct(text=build_admin_challenge(self.message_prefix, address, proof.timestamp))
        try:
            signer = Account.recover_message(message, signature=proof.signature)
        except Exception as e:
            log.warning(f"Admin signature for {address} could not be recovered: {e}")
            return False

        return signer.lower() == self.admin_address.lower()


def build_authorization_gate(settings: Settings) -> AuthorizationGate:
    if settings.ADMIN_AUTH_MODE == "signature":
        return SignatureVerifiedGate(
            admin_address=settings.ADMIN_ADDRESS,
            message_prefix=settings.ADMIN_AUTH_MESSAGE,
            max_age_seconds=settings.ADMIN_AUTH_MAX_AGE_SECONDS,
        )
    return StaticAddressGate(settings.ADMIN_ADDRESS)
