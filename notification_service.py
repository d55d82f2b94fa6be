# notification_service.py
# Telegram notifications for new verification and cash requests

import logging
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP, localcontext
from typing import Optional

import httpx

from config import Settings

log = logging.getLogger(__name__)

NATIVE_GAS_TOKENS = {"ETH"}
DEFAULT_TOKEN_DECIMALS = 6
NATIVE_TOKEN_DECIMALS = 18
DISPLAY_PLACES = Decimal("0.000001")


def token_decimals(token: Optional[str]) -> int:
    """Stablecoins use 6 decimals, the native gas token 18"""
    if token in NATIVE_GAS_TOKENS:
        return NATIVE_TOKEN_DECIMALS
    return DEFAULT_TOKEN_DECIMALS


def format_token_amount(amount_wei: str, decimals: int = DEFAULT_TOKEN_DECIMALS) -> str:
    """
    Convert a fixed-point integer string to a display decimal with six places.

    >>> format_token_amount("1000000", 6)
    '1.000000'
    """
    with localcontext() as ctx:
        ctx.prec = 100
        value = Decimal(str(amount_wei)).scaleb(-decimals)
        return format(value.quantize(DISPLAY_PLACES, rounding=ROUND_HALF_UP), "f")


def format_verification_message(kind: str, address: str, request_id: str, timestamp: datetime) -> str:
    return (
        "🔍 *New verification request*\n"
        "\n"
        f"*Type:* {kind}\n"
        f"*Address:* `{address}`\n"
        f"*Request ID:* {request_id}\n"
        f"*Timestamp:* {timestamp.isoformat()}\n"
        "\n"
        "Please review the request in the admin panel."
    )


def format_cash_message(
    direction: str,
    user_label: Optional[str],
    address: str,
    amount_wei: str,
    token: str,
    bank_ref: Optional[str],
    request_id: str,
    timestamp: datetime,
) -> str:
    amount = format_token_amount(amount_wei, token_decimals(token))
    return (
        f"💰 *New cash {direction.lower()} request*\n"
        "\n"
        f"*User:* {user_label or 'Unknown'}\n"
        f"*Wallet:* `{address}`\n"
        f"*Amount:* {amount} {token}\n"
        f"*Bank:* {bank_ref or 'Not specified'}\n"
        f"*Request ID:* {request_id}\n"
        f"*Timestamp:* {timestamp.isoformat()}\n"
        "\n"
        "Please review the request in the admin panel."
    )


class TelegramNotifier:
    """Best-effort sink: every failure is logged, none is raised."""

    def __init__(
        self,
        bot_token: Optional[str],
        chat_id: Optional[str],
        api_base: str = "https://api.telegram.org",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.bot_token = bot_token
        self.chat_id = chat_id
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "TelegramNotifier":
        return cls(
            bot_token=settings.TELEGRAM_BOT_TOKEN,
            chat_id=settings.TELEGRAM_CHAT_ID,
            api_base=settings.TELEGRAM_API_BASE,
            timeout=settings.NOTIFICATION_TIMEOUT_SECONDS,
        )

    async def notify(self, text: str) -> bool:
        """Send `text` to the configured chat. Returns True on delivery."""
        if not self.bot_token or not self.chat_id:
            log.warning("Telegram credentials not configured, skipping notification")
            return False

        url = f"{self.api_base}/bot{self.bot_token}/sendMessage"
        payload = {"chat_id": self.chat_id, "text": text, "parse_mode": "Markdown"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(url, json=payload)
        except Exception as e:
            log.error(f"Error sending Telegram notification: {e}")
            return False

        if response.is_error:
            log.error(f"Failed to send Telegram notification: {response.status_code} {response.text}")
            return False
        return True
