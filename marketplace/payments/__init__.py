"""
Module 'payments' (feature-first): point d'entrée public.
Réunit le calcul des prix, la construction des sessions Checkout, l'adaptateur Stripe
et la réconciliation des webhooks.
"""

from .pricing import PLATFORM_FEE_RATE, Split, compute_split, estimate_net, resolve_unit_amount, to_cents
from .records import Buyer, ConfirmedSale, Listing, SellerAccount
from .stripe_client import StripeGateway, verify_event
from .checkout import CheckoutRequest, build_checkout_request, check_listing, create_checkout_session
from .reconcile import WebhookOutcome, handle_confirmation_event, index_key, record_purchase

__all__ = [
    # pricing
    "PLATFORM_FEE_RATE",
    "Split",
    "compute_split",
    "estimate_net",
    "resolve_unit_amount",
    "to_cents",
    # records
    "Buyer",
    "ConfirmedSale",
    "Listing",
    "SellerAccount",
    # stripe
    "StripeGateway",
    "verify_event",
    # checkout
    "CheckoutRequest",
    "build_checkout_request",
    "check_listing",
    "create_checkout_session",
    # webhook
    "WebhookOutcome",
    "handle_confirmation_event",
    "index_key",
    "record_purchase",
]
