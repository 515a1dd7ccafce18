# backend/services/shipping_service.py
import logging
from datetime import timedelta

import httpx
from sqlalchemy.orm import Session

from config import Settings
from repositories import shipping_repository
from schemas.shipping import PackageProfile, ShippingOption, ShippingQuote
from utils.cep import format_cep, get_state_from_cep, is_valid_cep, normalize_cep
from utils.clock import utcnow
from utils.money import round_money

logger = logging.getLogger(__name__)

MIN_SHIPPING_PRICE = 15.0
BASE_WEIGHT_KG = 0.5

# state -> (fixed rate, delivery days) used when no carrier quote is available
REGIONAL_RATES = {
    "SP": (15.9, 3), "RJ": (18.9, 5), "MG": (19.9, 5), "ES": (21.9, 6),
    "PR": (22.9, 6), "SC": (24.9, 7), "RS": (26.9, 8),
    "GO": (24.9, 7), "MT": (29.9, 9), "MS": (27.9, 8), "DF": (23.9, 6),
    "BA": (29.9, 9), "SE": (32.9, 10), "AL": (33.9, 10), "PE": (34.9, 10),
    "PB": (35.9, 11), "RN": (36.9, 11), "CE": (37.9, 11), "PI": (38.9, 12),
    "MA": (39.9, 12),
    "TO": (34.9, 10), "PA": (42.9, 14), "AP": (49.9, 16), "AM": (54.9, 18),
    "RR": (59.9, 20), "AC": (59.9, 20), "RO": (44.9, 15),
}
DEFAULT_RATE = (39.9, 12)

DEFAULT_PROFILE = PackageProfile(name="Perfil Padrão", weight_kg=0.5, width_cm=20, height_cm=10, length_cm=30)

# Several products ship together: weights and heights add up, width and length take the largest
def combine_profiles(profiles) -> PackageProfile:
    profiles = [PackageProfile.model_validate(p) for p in profiles]
    if len(profiles) == 1:
        return profiles[0]
    return PackageProfile(
        name="Perfil combinado",
        weight_kg=sum(p.weight_kg for p in profiles),
        width_cm=max(p.width_cm for p in profiles),
        height_cm=sum(p.height_cm for p in profiles),
        length_cm=max(p.length_cm for p in profiles),
    )

def calculate_fallback_rates(destination_cep: str, profile: PackageProfile):
    state = get_state_from_cep(destination_cep)
    fixed_rate, days = REGIONAL_RATES.get(state, DEFAULT_RATE) if state else DEFAULT_RATE

    weight_multiplier = max(1.0, profile.weight_kg / BASE_WEIGHT_KG)
    price = max(MIN_SHIPPING_PRICE, fixed_rate * weight_multiplier)

    pac = ShippingOption(
        id="fallback_pac",
        carrier="Correios",
        service="PAC",
        price=round_money(price),
        delivery_days=days + 2,
        delivery_range={"min": days, "max": days + 4},
        recommended=True,
    )
    sedex = ShippingOption(
        id="fallback_sedex",
        carrier="Correios",
        service="SEDEX",
        price=round_money(price * 1.8),
        delivery_days=max(1, days - 3),
        delivery_range={"min": max(1, days - 4), "max": max(2, days - 2)},
    )
    return [pac, sedex]

class ShippingService:
    def __init__(self, db: Session, settings: Settings, transport: httpx.AsyncBaseTransport = None):
        self.db = db
        self.origin_cep = normalize_cep(settings.SHIPPING_ORIGIN_CEP)
        self.use_external_api = settings.SHIPPING_USE_EXTERNAL_API
        self.api_url = settings.MELHOR_ENVIO_API_URL
        self.token = settings.MELHOR_ENVIO_TOKEN
        self._transport = transport

    def resolve_profile(self, product_ids=None, plan_id=None, shipping_profile_id=None) -> PackageProfile:
        profile = None
        if shipping_profile_id:
            found = shipping_repository.find_profile_by_id(self.db, shipping_profile_id)
            profile = PackageProfile.model_validate(found) if found else None
        elif product_ids:
            profiles = shipping_repository.find_profiles_for_products(self.db, product_ids)
            profile = combine_profiles(profiles) if profiles else None
        elif plan_id:
            found = shipping_repository.find_profile_for_plan(self.db, plan_id)
            profile = PackageProfile.model_validate(found) if found else None

        if profile is None:
            logger.info("No shipping profile found, using default package")
            profile = DEFAULT_PROFILE
        return profile

    async def calculate_shipping(self, cep: str, product_ids=None, plan_id=None, shipping_profile_id=None) -> ShippingQuote:
        cep = normalize_cep(cep)
        if not is_valid_cep(cep):
            return ShippingQuote(success=False, destination_cep=cep, error="CEP inválido. Verifique e tente novamente.")

        profile = self.resolve_profile(product_ids, plan_id, shipping_profile_id)
        state = get_state_from_cep(cep)

        if self.use_external_api and self.token:
            try:
                options = await self.fetch_melhor_envio_quotes(cep, profile)
                if options:
                    return ShippingQuote(
                        success=True, options=options, destination_cep=format_cep(cep),
                        origin_cep=format_cep(self.origin_cep), state=state,
                    )
            except (httpx.HTTPError, ValueError, KeyError) as e:
                logger.warning("Melhor Envio quote failed, using regional rates: %s", e)

        return ShippingQuote(
            success=True,
            options=calculate_fallback_rates(cep, profile),
            destination_cep=format_cep(cep),
            origin_cep=format_cep(self.origin_cep),
            state=state,
        )

    async def fetch_melhor_envio_quotes(self, destination_cep: str, profile: PackageProfile):
        body = {
            "from": {"postal_code": self.origin_cep},
            "to": {"postal_code": destination_cep},
            "package": {
                "weight": profile.weight_kg,
                "width": profile.width_cm,
                "height": profile.height_cm,
                "length": profile.length_cm,
            },
        }
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.token}",
        }
        async with httpx.AsyncClient(base_url=self.api_url, timeout=10.0, transport=self._transport) as client:
            response = await client.post("/api/v2/me/shipment/calculate", json=body, headers=headers)
            response.raise_for_status()
            data = response.json()

        options = []
        for item in data:
            if item.get("error"):
                continue
            price = float(item.get("custom_price") or item.get("price") or 0)
            if price <= 0:
                continue
            delivery = item.get("delivery_range") or {}
            options.append(ShippingOption(
                id=f"melhor_envio_{item['id']}",
                carrier=item["company"]["name"],
                service=item["name"],
                price=round_money(price),
                delivery_days=int(delivery.get("max") or item.get("delivery_time") or 0),
                delivery_range={"min": delivery.get("min"), "max": delivery.get("max")},
                source="melhor_envio",
            ))
        options.sort(key=lambda o: o.price)
        if options:
            options[0].recommended = True
        return options

    # JSON snapshot persisted on the order; later quote changes never touch it
    def build_order_shipping_data(self, selected_option, destination_zip: str, profile: PackageProfile = None) -> dict:
        now = utcnow()
        option_id = getattr(selected_option, "option_id", None) or getattr(selected_option, "id", None)
        return {
            "option_id": option_id,
            "carrier": selected_option.carrier,
            "service": selected_option.service,
            "price": round_money(selected_option.price),
            "delivery_days": selected_option.delivery_days,
            "destination_zip_code": normalize_cep(destination_zip),
            "origin_zip_code": self.origin_cep,
            "total_weight_kg": profile.weight_kg if profile else 0,
            "dimensions": {
                "width_cm": profile.width_cm if profile else 0,
                "height_cm": profile.height_cm if profile else 0,
                "length_cm": profile.length_cm if profile else 0,
            },
            "quoted_at": now.isoformat(),
            "estimated_delivery_date": (now + timedelta(days=selected_option.delivery_days)).isoformat(),
        }
