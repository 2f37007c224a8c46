"""
Exceptions métier du tableau de bord partenaire.
Traduites en réponses HTTP par les gestionnaires déclarés dans main.py.
"""

from typing import Optional


class DomainException(Exception):
    """Exception de base de la couche métier."""

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class RemboursementNotFound(DomainException):
    """Aucun remboursement ne correspond à l'identifiant demandé."""


class ProviderError(DomainException):
    """Erreur liée au fournisseur de paiement Lengo Pay."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        raw_body: Optional[str] = None,
    ):
        super().__init__(message, details=raw_body)
        self.status_code = status_code
        self.raw_body = raw_body


class ProviderUnavailable(ProviderError):
    """Transport en échec, délai dépassé ou réponse non 2xx de Lengo Pay."""


class ProviderUnauthorized(ProviderError):
    """Lengo Pay a refusé les identifiants (401/403)."""


class ProviderConfigurationError(ProviderError):
    """Configuration Lengo Pay incomplète (clé API absente)."""


class PersistenceFailure(DomainException):
    """Échec de lecture ou d'écriture dans la base."""


class ConcurrentUpdateError(PersistenceFailure):
    """La ligne a été modifiée par un autre écrivain depuis sa lecture."""

    def __init__(self, pay_id: Optional[str], expected_version: int):
        super().__init__(
            f"Remboursement {pay_id} modifié concurremment "
            f"(version attendue {expected_version})"
        )
        self.pay_id = pay_id
        self.expected_version = expected_version


class WebhookSignatureError(DomainException):
    """Signature du webhook absente, invalide ou non vérifiable."""


class InvalidRequestError(DomainException):
    """Requête ou action refusée: identifiant vide ou transition interdite."""


__all__ = [
    "DomainException",
    "RemboursementNotFound",
    "ProviderError",
    "ProviderUnavailable",
    "ProviderUnauthorized",
    "ProviderConfigurationError",
    "PersistenceFailure",
    "ConcurrentUpdateError",
    "WebhookSignatureError",
    "InvalidRequestError",
]
