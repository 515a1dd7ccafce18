# backend/services/payment_service.py
import logging
from datetime import datetime, timedelta
from urllib.parse import urljoin

import httpx

from config import Settings
from schemas.checkout import CardPaymentData
from schemas.payment import CardPaymentResult, GatewayPaymentStatus, PixPaymentResult, RecurringSubscriptionResult
from utils.clock import to_naive_utc, utcnow
from utils.mercadopago_client import MercadoPagoClient
from utils.money import is_valid_amount, round_money

logger = logging.getLogger(__name__)

CARD_TOKEN_MISSING = "Token do cartão não fornecido"
CARD_GENERIC_ERROR = "Pagamento recusado. Verifique os dados do cartão ou tente outro cartão."
RECURRING_SETUP_ERROR = "Não foi possível configurar a cobrança recorrente"

REJECTION_MESSAGES = {
    "cc_rejected_bad_filled_card_number": "Número do cartão incorreto.",
    "cc_rejected_bad_filled_date": "Data de validade incorreta.",
    "cc_rejected_bad_filled_other": "Dados do cartão incorretos.",
    "cc_rejected_bad_filled_security_code": "CVV incorreto.",
    "cc_rejected_blacklist": "Cartão não permitido.",
    "cc_rejected_call_for_authorize": "Autorize o pagamento junto ao banco.",
    "cc_rejected_card_disabled": "Cartão desabilitado. Contate o banco.",
    "cc_rejected_card_error": "Erro no cartão. Tente outro.",
    "cc_rejected_duplicated_payment": "Pagamento duplicado. Aguarde.",
    "cc_rejected_high_risk": "Pagamento recusado por segurança.",
    "cc_rejected_insufficient_amount": "Saldo insuficiente.",
    "cc_rejected_invalid_installments": "Parcelas não permitidas.",
    "cc_rejected_max_attempts": "Limite de tentativas. Tente outro cartão.",
    "cc_rejected_other_reason": "Pagamento recusado pelo banco.",
}

# Gateway status -> status understood by the checkout reconciliation
GATEWAY_STATUS = {
    "approved": "approved",
    "pending": "pending",
    "authorized": "pending",
    "in_process": "pending",
    "in_mediation": "pending",
    "rejected": "rejected",
    "cancelled": "cancelled",
    "refunded": "refunded",
    "charged_back": "refunded",
}

class PaymentServiceError(Exception):
    pass

def normalize_gateway_status(raw_status) -> str:
    return GATEWAY_STATUS.get((raw_status or "").lower(), "pending")

def _parse_gateway_date(value):
    if not value:
        return None
    try:
        return to_naive_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
    except ValueError:
        return None

class PaymentService:
    def __init__(self, client: MercadoPagoClient, settings: Settings):
        self.client = client
        self.pix_expiration = timedelta(minutes=settings.PIX_EXPIRATION_MINUTES)
        self.subscription_back_url = urljoin(settings.FRONTEND_URL, "/subscriptions")

    async def create_pix_payment_direct(self, *, amount, description: str, email: str, external_reference: str) -> PixPaymentResult:
        amount = round_money(amount)
        if not is_valid_amount(amount):
            raise PaymentServiceError(f"Valor inválido para pagamento PIX: {amount}")

        expires_at = utcnow() + self.pix_expiration
        body = {
            "transaction_amount": amount,
            "description": description,
            "payment_method_id": "pix",
            "payer": {"email": email},
            "external_reference": external_reference,
            "date_of_expiration": expires_at.strftime("%Y-%m-%dT%H:%M:%S.000+00:00"),
        }
        try:
            data = await self.client.create_payment(body)
        except httpx.HTTPError as e:
            raise PaymentServiceError("Falha ao criar pagamento PIX no Mercado Pago") from e

        transaction = (data.get("point_of_interaction") or {}).get("transaction_data") or {}
        if not data.get("id") or not transaction.get("qr_code"):
            logger.error("PIX response without QR code for %s: %s", external_reference, data)
            raise PaymentServiceError("Resposta do Mercado Pago sem dados do PIX")

        return PixPaymentResult(
            payment_id=str(data["id"]),
            qr_code=transaction["qr_code"],
            qr_code_base64=transaction.get("qr_code_base64"),
            pix_copy_paste=transaction["qr_code"],
            ticket_url=transaction.get("ticket_url"),
            expiration_date=_parse_gateway_date(data.get("date_of_expiration")) or expires_at,
            status=data.get("status") or "pending",
            payload=data,
        )

    # One synchronous attempt, no retry. A rejected card is a result, not an exception.
    async def create_card_payment(self, *, amount, card: CardPaymentData, email: str, external_reference: str,
                                  description: str) -> CardPaymentResult:
        if not card.card_token:
            return CardPaymentResult(success=False, status="rejected", error=CARD_TOKEN_MISSING)

        amount = round_money(amount)
        if not is_valid_amount(amount):
            return CardPaymentResult(success=False, status="rejected", error="Valor inválido para pagamento")

        body = {
            "transaction_amount": amount,
            "token": card.card_token,
            "description": description,
            "installments": card.installments,
            "payer": {"email": email},
            "external_reference": external_reference,
        }
        if card.brand:
            body["payment_method_id"] = card.brand.lower()

        try:
            data = await self.client.create_payment(body)
        except httpx.HTTPError as e:
            logger.warning("Card payment for %s failed at the gateway: %s", external_reference, e)
            return CardPaymentResult(success=False, status="rejected", error=CARD_GENERIC_ERROR)

        transaction_id = str(data["id"]) if data.get("id") is not None else None
        status = normalize_gateway_status(data.get("status"))
        if status == "approved":
            return CardPaymentResult(success=True, status="approved", transaction_id=transaction_id, payload=data)
        if status == "pending":
            return CardPaymentResult(success=True, status="pending", transaction_id=transaction_id, payload=data)

        message = REJECTION_MESSAGES.get(data.get("status_detail"), CARD_GENERIC_ERROR)
        return CardPaymentResult(
            success=False, status="rejected", transaction_id=transaction_id, payload=data, error=message
        )

    async def get_payment_status(self, transaction_id) -> GatewayPaymentStatus:
        try:
            data = await self.client.get_payment(transaction_id)
        except httpx.HTTPError as e:
            raise PaymentServiceError(f"Não foi possível consultar o pagamento {transaction_id}") from e

        return GatewayPaymentStatus(
            transaction_id=str(data.get("id", transaction_id)),
            status=normalize_gateway_status(data.get("status")),
            raw_status=data.get("status"),
            status_detail=data.get("status_detail"),
            external_reference=data.get("external_reference"),
            payload=data,
        )

    # Preapproval charging the cycles after the first one, which is paid at checkout
    async def create_recurring_subscription(self, *, card_token: str, email: str, reason: str, amount,
                                            external_reference: str, start_date: datetime = None,
                                            frequency_months: int = 1) -> RecurringSubscriptionResult:
        if not card_token:
            return RecurringSubscriptionResult(success=False, error=CARD_TOKEN_MISSING)

        amount = round_money(amount)
        if not is_valid_amount(amount):
            return RecurringSubscriptionResult(success=False, error="Valor da assinatura inválido")

        auto_recurring = {
            "frequency": frequency_months,
            "frequency_type": "months",
            "transaction_amount": amount,
            "currency_id": "BRL",
        }
        if start_date is not None:
            auto_recurring["start_date"] = start_date.strftime("%Y-%m-%dT%H:%M:%S.000+00:00")

        body = {
            "reason": reason,
            "payer_email": email,
            "card_token_id": card_token,
            "external_reference": external_reference,
            "status": "authorized",
            "back_url": self.subscription_back_url,
            "auto_recurring": auto_recurring,
        }
        try:
            data = await self.client.create_preapproval(body)
        except httpx.HTTPError as e:
            logger.warning("Preapproval for %s failed at the gateway: %s", external_reference, e)
            return RecurringSubscriptionResult(success=False, error=RECURRING_SETUP_ERROR)

        if not data.get("id"):
            logger.error("Preapproval response without id for %s: %s", external_reference, data)
            return RecurringSubscriptionResult(success=False, payload=data, error=RECURRING_SETUP_ERROR)

        return RecurringSubscriptionResult(
            success=True,
            preapproval_id=str(data["id"]),
            status=data.get("status"),
            next_payment_date=_parse_gateway_date(data.get("next_payment_date")),
            payload=data,
        )

    async def cancel_recurring_subscription(self, preapproval_id) -> bool:
        try:
            await self.client.update_preapproval(preapproval_id, {"status": "cancelled"})
        except httpx.HTTPError as e:
            logger.error("Could not cancel preapproval %s: %s", preapproval_id, e)
            return False
        return True
