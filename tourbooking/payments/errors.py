"""
Erreurs métier du cœur de paiement.

Chaque erreur porte son code HTTP; le handler enregistré par la factory
les rend en {"detail": message}. Les erreurs du fournisseur (Stripe) ne
sont pas enveloppées ici: elles remontent telles quelles jusqu'à la vue.
"""

# module tourbooking.payments.errors
class PaymentError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class Unauthorized(PaymentError):
    status_code = 401


class NotFound(PaymentError):
    status_code = 404


class UnsupportedMethod(PaymentError):
    status_code = 400


class InvalidAmount(PaymentError):
    status_code = 400


class InvalidSignature(PaymentError):
    status_code = 400
