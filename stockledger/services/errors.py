"""
Erreurs métier du moteur stock / réception.

Toutes sont "opérationnelles" (attendues, récupérables) : l'API les
traduit en réponse HTTP via ``status_code``. Les erreurs de transport
SQL ne passent PAS par ici et remontent en 500.
"""

from __future__ import annotations


class LedgerError(Exception):
    status_code = 400
    default_detail = "Inventory ledger error."

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ValidationError(LedgerError):
    """Entrée invalide (quantité, transfert même location, description manquante...)."""
    status_code = 400
    default_detail = "Invalid input."


class AuthorizationError(LedgerError):
    """Le document existe mais n'appartient pas à l'utilisateur courant."""
    status_code = 403
    default_detail = "Access denied."


class NotFoundError(LedgerError):
    status_code = 404
    default_detail = "Not found."


class OverReceiptError(LedgerError):
    """
    La réception dépasserait la quantité commandée d'une ligne.
    Toute la réception est rejetée.
    """
    status_code = 409
    default_detail = "Received quantity would exceed ordered quantity."

    def __init__(self, material_name: str, received_quantity: int):
        self.material_name = material_name
        self.received_quantity = received_quantity
        super().__init__(
            f"Cannot receive {received_quantity} - would exceed ordered quantity for {material_name}"
        )


class TransactionAbortError(LedgerError):
    """Commit impossible (écriture concurrente...). Rien n'a été persisté : retry complet OK."""
    status_code = 503
    default_detail = "Transaction aborted, please retry."
