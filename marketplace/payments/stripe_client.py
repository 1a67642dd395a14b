"""
Adaptateur Stripe: centralise les appels au processeur de paiement.
- StripeGateway est construit explicitement avec sa clé (échec immédiat si absente);
  la clé est passée à chaque requête, stripe.api_key n'est jamais modifié.
- verify_event valide un webhook signé contre une liste de secrets (rotation / Connect).
"""
import json
import logging
from typing import Any, Dict, Optional, Sequence

import stripe

from marketplace.errors import GatewayError, SignatureInvalid

logger = logging.getLogger(__name__)

# Tolérance (secondes) sur l'horodatage de la signature, valeur par défaut de Stripe
SIGNATURE_TOLERANCE = 300

# module marketplace.payments.stripe_client
class StripeGateway:
    def __init__(self, api_key: str, connect_client_id: str = ""):
        if not api_key:
            raise RuntimeError("STRIPE_SECRET_KEY manquant")
        self.api_key = api_key
        self.connect_client_id = connect_client_id

    def create_session(self, params: Dict[str, Any], *, stripe_account: Optional[str] = None) -> Dict[str, Any]:
        """
        Crée une session Stripe Checkout.
        - params: paramètres de stripe.checkout.Session.create (line_items, metadata, ...)
        - stripe_account: compte connecté pour une charge directe (None pour destination)
        Retour: {"id": "cs_...", "url": "https://checkout.stripe.com/..."}
        """
        options: Dict[str, Any] = {"api_key": self.api_key}
        if stripe_account:
            options["stripe_account"] = stripe_account
        try:
            session = stripe.checkout.Session.create(**params, **options)
        except Exception as e:
            message = getattr(e, "user_message", None) or str(e) or "Stripe error"
            logger.exception("stripe.create_session failed metadata=%s", params.get("metadata"))
            raise GatewayError(message) from e
        return {"id": getattr(session, "id", None), "url": getattr(session, "url", None)}

    def get_or_create_customer(self, *, email: str, uid: str) -> str:
        """Retourne l'id du client Stripe existant pour cet email, sinon le crée (metadata.uid)."""
        try:
            found = stripe.Customer.list(email=email, limit=1, api_key=self.api_key)
            existing = list(getattr(found, "data", None) or [])
            if existing:
                return existing[0].id
            customer = stripe.Customer.create(email=email, metadata={"uid": uid}, api_key=self.api_key)
            return customer.id
        except Exception as e:
            logger.exception("stripe.customer failed uid=%s", uid)
            raise GatewayError(getattr(e, "user_message", None) or str(e)) from e

    def authorize_url(self, state: str) -> str:
        """URL OAuth Connect pour relier le compte Stripe d'un vendeur (state = uid)."""
        if not self.connect_client_id:
            raise RuntimeError("STRIPE_CONNECT_CLIENT_ID manquant")
        return stripe.OAuth.authorize_url(
            client_id=self.connect_client_id,
            response_type="code",
            scope="read_write",
            state=state,
        )

    def exchange_oauth_code(self, code: str) -> str:
        """Échange le code OAuth contre l'identifiant du compte connecté (acct_...)."""
        try:
            token = stripe.OAuth.token(grant_type="authorization_code", code=code, api_key=self.api_key)
        except Exception as e:
            logger.exception("stripe.oauth.token failed")
            raise GatewayError(getattr(e, "user_message", None) or str(e)) from e
        return getattr(token, "stripe_user_id", None) or ""


def verify_event(payload: bytes, sig_header: Optional[str], secrets: Sequence[str]) -> Dict[str, Any]:
    """
    Valide la signature Stripe-Signature contre chaque secret, dans l'ordre.
    - Premier secret valide: retourne l'événement (dict JSON brut).
    - Aucun secret valide, en-tête ou secrets absents: SignatureInvalid.
    """
    if not sig_header or not secrets:
        raise SignatureInvalid("Missing signature or secret")
    try:
        body = payload.decode("utf-8") if isinstance(payload, (bytes, bytearray)) else str(payload)
    except UnicodeDecodeError as e:
        raise SignatureInvalid("Webhook Error: invalid payload") from e
    last_error: Optional[Exception] = None
    for secret in secrets:
        try:
            stripe.WebhookSignature.verify_header(body, sig_header, secret, SIGNATURE_TOLERANCE)
            break
        except stripe.SignatureVerificationError as e:
            last_error = e
    else:
        raise SignatureInvalid(f"Webhook Error: {last_error or 'bad signature'}")
    try:
        event = json.loads(body)
    except ValueError as e:
        raise SignatureInvalid("Webhook Error: invalid payload") from e
    if not isinstance(event, dict):
        raise SignatureInvalid("Webhook Error: invalid payload")
    return event
