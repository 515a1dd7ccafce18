# backend/utils/mercadopago_client.py
import httpx
import logging
import uuid
from urllib.parse import urljoin

from config import Settings

logger = logging.getLogger(__name__)

class MercadoPagoClient:
    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport = None):
        self.api_url = settings.MP_API_URL
        self.access_token = settings.MP_ACCESS_TOKEN
        self.notification_url = urljoin(settings.BACKEND_URL, "/webhooks/mercadopago")
        self.timeout = 15.0
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.api_url, timeout=self.timeout, transport=self._transport)

    def _headers(self, idempotency_key: str = None) -> dict:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.access_token}",
        }
        if idempotency_key:
            headers["X-Idempotency-Key"] = idempotency_key
        return headers

    async def create_payment(self, payment_data: dict, idempotency_key: str = None) -> dict:
        # The gateway refuses notification URLs it cannot reach over https
        body = dict(payment_data)
        if self.notification_url.startswith("https://"):
            body.setdefault("notification_url", self.notification_url)

        headers = self._headers(idempotency_key or str(uuid.uuid4()))
        async with self._client() as client:
            try:
                response = await client.post("/v1/payments", json=body, headers=headers)
                response.raise_for_status()
                return response.json()
            except (httpx.RequestError, httpx.HTTPStatusError) as e:
                resp_text = e.response.text if isinstance(e, httpx.HTTPStatusError) else str(e)
                logger.error("Mercado Pago create payment error: %s", resp_text)
                raise

    async def get_payment(self, payment_id) -> dict:
        async with self._client() as client:
            try:
                response = await client.get(f"/v1/payments/{payment_id}", headers=self._headers())
                response.raise_for_status()
                return response.json()
            except (httpx.RequestError, httpx.HTTPStatusError) as e:
                logger.error("Mercado Pago get payment %s error: %s", payment_id, e)
                raise

    # Recurring billing (preapproval): the gateway charges the card every cycle
    async def create_preapproval(self, preapproval_data: dict, idempotency_key: str = None) -> dict:
        body = dict(preapproval_data)
        if self.notification_url.startswith("https://"):
            body.setdefault("notification_url", self.notification_url)

        headers = self._headers(idempotency_key or str(uuid.uuid4()))
        async with self._client() as client:
            try:
                response = await client.post("/preapproval", json=body, headers=headers)
                response.raise_for_status()
                return response.json()
            except (httpx.RequestError, httpx.HTTPStatusError) as e:
                resp_text = e.response.text if isinstance(e, httpx.HTTPStatusError) else str(e)
                logger.error("Mercado Pago create preapproval error: %s", resp_text)
                raise

    # status: authorized (resume), paused or cancelled
    async def update_preapproval(self, preapproval_id, changes: dict) -> dict:
        async with self._client() as client:
            try:
                response = await client.put(f"/preapproval/{preapproval_id}", json=changes, headers=self._headers())
                response.raise_for_status()
                return response.json()
            except (httpx.RequestError, httpx.HTTPStatusError) as e:
                logger.error("Mercado Pago update preapproval %s error: %s", preapproval_id, e)
                raise
