"""
Tableau de bord partenaire ZaLaMa.
Remboursements d'avances sur salaire et synchronisation avec Lengo Pay.
"""

__version__ = "1.0.0"
