"""
Bank Balance Lookup

DESIGN DECISION: Account linking (link tokens, public-token exchange)
lives entirely on the balance service. From here the lookup is one
opaque call keyed by identity:

    POST {base_url}/balances  {"uid": "..."}
    -> {"accounts": [{"name", "subtype"?, "mask"?, "balance"}]}

Only transport failures are retried; an HTTP error status or a
malformed body is reported immediately as BankingError.
"""

import asyncio
from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

import httpx
import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from money_tracker.config import BankingSettings
from money_tracker.ledger.calculator import AMOUNT_LIMIT
from money_tracker.models.ledger import BankAccount, BankBalances


logger = structlog.get_logger(__name__)


class BankingError(Exception):
    """The balance lookup failed or returned something unusable."""
    pass


class BalanceLookupInterface(ABC):
    """Fetches linked account balances for an identity."""

    @abstractmethod
    async def fetch_balances(self, uid: str) -> BankBalances:
        """
        Fetch balances of every account linked to an identity.

        Raises:
            BankingError: If the lookup fails
        """
        pass

    async def close(self) -> None:
        """Release any held connections."""
        return None


def _optional_text(value: Any) -> Optional[str]:
    return str(value) if value is not None else None


def parse_balances(payload: Any) -> BankBalances:
    """
    Parse a balance lookup response body.

    Raises:
        BankingError: If the body does not have the expected shape
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("accounts"), list):
        raise BankingError("Balance response has no accounts list")

    accounts = []
    for index, raw in enumerate(payload["accounts"]):
        if not isinstance(raw, dict):
            raise BankingError(f"Account #{index} is not an object")
        try:
            balance = Decimal(str(raw.get("balance", 0)))
        except (InvalidOperation, ValueError):
            raise BankingError(f"Account #{index} has a non-numeric balance")
        if not balance.is_finite():
            raise BankingError(f"Account #{index} has a non-numeric balance")
        if abs(balance) > AMOUNT_LIMIT:
            raise BankingError(f"Account #{index} has an out-of-range balance")
        accounts.append(
            BankAccount(
                name=str(raw.get("name") or "Account"),
                subtype=_optional_text(raw.get("subtype")),
                mask=_optional_text(raw.get("mask")),
                balance=balance,
            )
        )
    return BankBalances(accounts=accounts)


class HttpBalanceClient(BalanceLookupInterface):
    """Balance lookup over HTTP, using a lazily created httpx.AsyncClient."""

    def __init__(
        self,
        settings: BankingSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            settings: Endpoint and credentials
            transport: Optional httpx transport (tests pass a MockTransport)
        """
        self._settings = settings
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._client_loop: Optional[asyncio.AbstractEventLoop] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """
        HTTP client (lazy initialization).

        A pooled connection belongs to the event loop that opened it, and
        the UI runs each action on a fresh loop, so the client is rebuilt
        whenever the running loop changes.
        """
        loop = asyncio.get_running_loop()
        if self._client is not None and self._client_loop is not loop:
            # Connections opened on another loop can be neither reused nor closed here
            logger.debug("balance_client_rebuilt_for_new_loop")
            self._client = None
        if self._client is None or self._client.is_closed:
            headers = {"Accept": "application/json"}
            if self._settings.api_key:
                headers["Authorization"] = f"Bearer {self._settings.api_key}"
            self._client = httpx.AsyncClient(
                base_url=self._settings.base_url,
                timeout=self._settings.timeout_seconds,
                headers=headers,
                transport=self._transport,
            )
            self._client_loop = loop
        return self._client

    async def close(self) -> None:
        client, self._client = self._client, None
        if client is None or client.is_closed:
            return
        if self._client_loop is asyncio.get_running_loop():
            await client.aclose()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=5),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    async def _post_balances(self, uid: str) -> httpx.Response:
        client = await self._get_client()
        return await client.post("/balances", json={"uid": uid})

    async def fetch_balances(self, uid: str) -> BankBalances:
        try:
            response = await self._post_balances(uid)
        except httpx.TransportError as e:
            logger.error("balance_lookup_unreachable", uid=uid, error=str(e))
            raise BankingError(f"Balance service unreachable: {e}") from e

        if response.status_code >= 400:
            logger.error("balance_lookup_failed", uid=uid, status=response.status_code)
            raise BankingError(f"Balance service returned HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise BankingError("Balance service returned invalid JSON") from e

        balances = parse_balances(payload)
        logger.info("balances_fetched", uid=uid, accounts=len(balances.accounts))
        return balances
