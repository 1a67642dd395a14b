"""Couche service vendeurs: relier un compte Stripe Connect (OAuth) et consulter son état."""
from typing import Any, Dict, Optional
import logging

from marketplace.errors import GatewayError, ValidationError
from marketplace.payments.records import SellerAccount
from . import repository

logger = logging.getLogger(__name__)

def onboarding_url(gateway, uid: str) -> str:
    if not uid:
        raise ValidationError("uid requis")
    return gateway.authorize_url(state=uid)

def payout_status(store, uid: str) -> Dict[str, Any]:
    seller = SellerAccount.from_document(repository.get_user(store, uid), uid)
    return {"connected": seller.is_onboarded, "stripeAccountId": seller.stripe_account_id}

def complete_oauth(store, gateway, *, code: Optional[str], state: Optional[str]) -> str:
    """
    Termine le flux OAuth Connect: state porte l'uid du vendeur.
    - ValidationError si code/state manquent
    - GatewayError si Stripe ne renvoie pas de compte connecté
    Retourne l'identifiant acct_... enregistré.
    """
    if not code or not state:
        raise ValidationError("missing_code_or_state")
    account_id = gateway.exchange_oauth_code(code)
    if not account_id:
        raise GatewayError("no_connected_account")
    uid = str(state)
    repository.upsert_payout_account(store, uid, account_id)
    logger.info("sellers.oauth linked uid=%s account=%s", uid, account_id)
    return account_id
