"""
Taxonomie d'erreurs du bridge.
Chaque erreur porte un code stable et le statut HTTP sous lequel elle est rendue
(voir app_setup.exceptions).
"""


class BridgeError(Exception):
    """Base de toutes les erreurs métier du bridge."""

    def __init__(self, message: str, code: str = "INTERNAL_ERROR", status_code: int = 500):
        self.message = message
        self.code = code
        self.status_code = status_code
        super().__init__(self.message)


class MissingReferenceError(BridgeError):
    """Ligne de panier sans prix client exploitable ni référence catalogue résolvable."""

    def __init__(self, message: str):
        super().__init__(message, code="MISSING_REFERENCE", status_code=400)


class NoValidItemsError(BridgeError):
    """Aucune ligne valide après filtrage du panier."""

    def __init__(self, message: str = "No valid items"):
        super().__init__(message, code="NO_VALID_ITEMS", status_code=400)


class InvalidCartError(BridgeError):
    """Corps de requête illisible (JSON invalide, items absent ou non-liste)."""

    def __init__(self, message: str = "No items"):
        super().__init__(message, code="INVALID_CART", status_code=400)


class InvalidSignatureError(BridgeError):
    """Webhook non authentifié: le payload ne doit pas être traité."""

    def __init__(self, message: str):
        super().__init__(message, code="INVALID_SIGNATURE", status_code=400)


class UpstreamLookupError(BridgeError):
    """Appel Shopify/Stripe en échec ou réponse inutilisable."""

    def __init__(self, message: str):
        super().__init__(message, code="UPSTREAM_LOOKUP_FAILED", status_code=500)


class SessionCreationError(BridgeError):
    """Stripe a refusé la création de la session Checkout."""

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(message, code="SESSION_CREATION_FAILED", status_code=500)
        self.cause = cause
