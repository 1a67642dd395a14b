"""
Taxonomie des erreurs métier de la marketplace.
- Chaque erreur porte un status_code HTTP et un 'kind' stable (exposé dans la réponse JSON).
- Les vues laissent remonter ces exceptions; app_setup.exceptions les convertit en JSONResponse.
"""
from typing import Optional


class MarketplaceError(Exception):
    status_code = 500
    kind = "MarketplaceError"

    def __init__(self, message: str = "", *, context: Optional[dict] = None):
        super().__init__(message or self.kind)
        self.message = message or self.kind
        self.context = context or {}


class ValidationError(MarketplaceError):
    """Entrée client insuffisante ou contradictoire."""
    status_code = 400
    kind = "ValidationError"


class NotFound(ValidationError):
    status_code = 404
    kind = "NotFound"


class InvalidState(ValidationError):
    kind = "InvalidState"


class MalformedRecord(ValidationError):
    kind = "MalformedRecord"


class Conflict(ValidationError):
    kind = "Conflict"


class SellerNotOnboarded(ValidationError):
    kind = "SellerNotOnboarded"


class InvalidPrice(ValidationError):
    kind = "InvalidPrice"


class GatewayError(MarketplaceError):
    """Échec d'un appel Stripe; le message du processeur est conservé."""
    status_code = 502
    kind = "GatewayError"


class SignatureInvalid(MarketplaceError):
    status_code = 400
    kind = "SignatureInvalid"


class MalformedEvent(MarketplaceError):
    # Jamais renvoyé à Stripe: l'événement est acquitté (200) puis ignoré
    status_code = 200
    kind = "MalformedEvent"


class PersistenceError(MarketplaceError):
    status_code = 500
    kind = "PersistenceError"
