"""
Logique prix pure (pas de Stripe, pas de DB).
- resolve_unit_amount: prix unitaire en centimes depuis une annonce aux formes historiques multiples.
- compute_split: part plateforme (12 %) et part vendeur.
- estimate_net: estimation d'affichage du net vendeur (frais Stripe approximés).

Arrondi: « half away from zero » (ROUND_HALF_UP de decimal) sur des valeurs exactes,
jamais le round() bancaire de Python.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, NamedTuple, Optional, Union

# module marketplace.payments.pricing
PLATFORM_FEE_RATE = Decimal("0.12")

# Estimation des frais Stripe (affichage uniquement)
PROCESSOR_FEE_RATE = Decimal("0.034")
PROCESSOR_FIXED_FEE_CENTS = 50

# Ordre de priorité des champs déjà exprimés en centimes
CENTS_FIELDS = ("priceCents", "price_cents", "priceCentsSGD")
# Champ en unités majeures (ex: "4.90", 4.9, 5)
MAJOR_UNIT_FIELD = "price"


class Split(NamedTuple):
    fee_cents: int
    seller_net_cents: int


def _to_decimal(value: Any) -> Optional[Decimal]:
    """
    Convertit int/float/str en Decimal fini, sinon None.
    - bool, None, chaînes vides ou non numériques -> None
    - NaN / Infinity -> None
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    elif not isinstance(value, (int, float, Decimal)):
        return None
    try:
        d = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not d.is_finite():
        return None
    return d


def _round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def to_cents(value: Any) -> int:
    """Convertit un prix en unités majeures en centimes; 0 si invalide ou <= 0."""
    d = _to_decimal(value)
    if d is None or d <= 0:
        return 0
    return _round_half_up(d * 100)


def resolve_unit_amount(listing: Optional[Dict[str, Any]]) -> int:
    """
    Retourne le prix unitaire (centimes) d'une annonce, ou 0.
    - Parcourt CENTS_FIELDS dans l'ordre; le premier candidat fini et > 0 gagne (arrondi à l'entier).
    - Sinon, convertit le champ 'price' (unités majeures) en centimes.
    - Les candidats négatifs, nuls, non numériques ou non finis sont ignorés.
    """
    if not listing:
        return 0
    for field in CENTS_FIELDS:
        d = _to_decimal(listing.get(field))
        if d is not None and d > 0:
            cents = _round_half_up(d)
            if cents > 0:
                return cents
    return to_cents(listing.get(MAJOR_UNIT_FIELD))


def compute_split(unit_amount_cents: int, platform_fee_rate: Union[Decimal, float, str] = PLATFORM_FEE_RATE) -> Split:
    """
    fee = round_half_up(unit_amount * rate), seller_net = unit_amount - fee.
    Invariant: 0 <= fee <= unit_amount.
    """
    amount = int(unit_amount_cents)
    if amount < 0:
        raise ValueError("unit_amount_cents doit être >= 0")
    rate = Decimal(str(platform_fee_rate))
    if rate < 0 or rate > 1:
        raise ValueError("platform_fee_rate doit être compris entre 0 et 1")
    fee = _round_half_up(Decimal(amount) * rate)
    fee = max(0, min(fee, amount))
    return Split(fee_cents=fee, seller_net_cents=amount - fee)


def estimate_net(price_cents: int) -> Dict[str, int]:
    """Estimation d'affichage (page gains vendeur): net = prix - frais plateforme - frais Stripe."""
    split = compute_split(price_cents)
    processor_fee = _round_half_up(Decimal(int(price_cents)) * PROCESSOR_FEE_RATE) + PROCESSOR_FIXED_FEE_CENTS
    return {
        "priceCents": int(price_cents),
        "platformFee": split.fee_cents,
        "stripeFee": processor_fee,
        "net": int(price_cents) - split.fee_cents - processor_fee,
    }
