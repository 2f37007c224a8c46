"""
Module API - Points d'entrée RESTful du tableau de bord partenaire.
"""

from .deps import get_current_admin, get_partner_admin, require_roles

__all__ = [
    "get_current_admin",
    "get_partner_admin",
    "require_roles",
]
