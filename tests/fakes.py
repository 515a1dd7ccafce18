import httpx


class FakeMercadoPagoClient:
    """In-memory stand-in for MercadoPagoClient that records every call."""

    def __init__(self):
        self.created = []
        self.fetched = []
        self.payments = {}
        self.next_id = 9000
        self.card_status = "approved"
        self.card_status_detail = "accredited"
        self.fail_with = None
        self.preapprovals = {}
        self.preapproval_updates = []
        self.preapproval_fail_with = None

    async def create_payment(self, payment_data, idempotency_key=None):
        self.created.append(payment_data)
        if self.fail_with is not None:
            raise self.fail_with

        self.next_id += 1
        payment_id = self.next_id
        data = {
            "id": payment_id,
            "transaction_amount": payment_data["transaction_amount"],
            "external_reference": payment_data.get("external_reference"),
        }
        if payment_data.get("payment_method_id") == "pix":
            data.update({
                "status": "pending",
                "status_detail": "pending_waiting_transfer",
                "point_of_interaction": {
                    "transaction_data": {
                        "qr_code": f"00020126PIX{payment_id}",
                        "qr_code_base64": "iVBORw0KGgo=",
                        "ticket_url": f"https://www.mercadopago.com.br/payments/{payment_id}/ticket",
                    }
                },
            })
        else:
            data.update({"status": self.card_status, "status_detail": self.card_status_detail})
        self.payments[str(payment_id)] = data
        return data

    async def get_payment(self, payment_id):
        self.fetched.append(str(payment_id))
        data = self.payments.get(str(payment_id))
        if data is None:
            request = httpx.Request("GET", f"https://api.mercadopago.com/v1/payments/{payment_id}")
            raise httpx.HTTPStatusError("Not Found", request=request, response=httpx.Response(404, request=request))
        return data

    def set_status(self, payment_id, status, status_detail=None):
        self.payments[str(payment_id)]["status"] = status
        if status_detail is not None:
            self.payments[str(payment_id)]["status_detail"] = status_detail

    async def create_preapproval(self, preapproval_data, idempotency_key=None):
        if self.preapproval_fail_with is not None:
            raise self.preapproval_fail_with
        preapproval_id = f"preapproval-{len(self.preapprovals) + 1}"
        data = dict(preapproval_data, id=preapproval_id, status="authorized")
        self.preapprovals[preapproval_id] = data
        return data

    async def update_preapproval(self, preapproval_id, changes):
        self.preapproval_updates.append((str(preapproval_id), changes))
        if self.preapproval_fail_with is not None:
            raise self.preapproval_fail_with
        self.preapprovals[str(preapproval_id)].update(changes)
        return self.preapprovals[str(preapproval_id)]
