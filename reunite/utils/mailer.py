from abc import ABC, abstractmethod
from typing import Optional

import httpx

from reunite.config import Settings
from reunite.errors import DeliveryError
from reunite.utils.logger import get_logger

logger = get_logger(__name__)

RESEND_URL = "https://api.resend.com/emails"


class Mailer(ABC):
    @abstractmethod
    async def send(self, to_address: str, subject: str, html: str) -> None:
        """Dispatch one message; raises DeliveryError if it did not go out."""


class ResendMailer(Mailer):
    """Sends mail through the Resend HTTP API."""

    def __init__(
        self,
        api_key: Optional[str],
        from_address: str,
        http_client: Optional[httpx.AsyncClient] = None,
        api_url: str = RESEND_URL,
    ):
        self.api_key = api_key
        self.from_address = from_address
        self.api_url = api_url
        self._client = http_client
        self._owns_client = http_client is None

    @classmethod
    def from_settings(
        cls, settings: Settings, http_client: Optional[httpx.AsyncClient] = None
    ) -> "ResendMailer":
        return cls(settings.resend_api_key, settings.mail_from, http_client=http_client)

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(15.0, connect=5.0))
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def send(self, to_address: str, subject: str, html: str) -> None:
        if not self.api_key:
            raise DeliveryError("RESEND_API_KEY is not configured")

        try:
            response = await self.client.post(
                self.api_url,
                json={
                    "from": self.from_address,
                    "to": [to_address],
                    "subject": subject,
                    "html": html,
                },
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
        except httpx.HTTPError as e:
            raise DeliveryError("Mail provider unreachable", {"error": str(e)}) from e

        if not response.is_success:
            raise DeliveryError(
                f"Mail provider returned HTTP {response.status_code}",
                {"status_code": response.status_code, "body": response.text[:200]},
            )

        logger.debug("mail_dispatched", to=to_address, subject=subject)
