# tourbooking.config
from dataclasses import dataclass
from pathlib import Path
import os
from dotenv import load_dotenv

# Calculer le chemin du projet puis charger .env de manière explicite
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=True)

"""
Configuration centrale du service de paiement des réservations.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Normalise et expose les secrets/URLs (Supabase, JWT, VNPay, Stripe), CORS/hosts
- Fournit des objets de réglages immuables pour les adaptateurs de paiement
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

# Supabase: URL et clé service-role
SUPABASE_URL = _clean_env(os.getenv("SUPABASE_URL") or "")
SUPABASE_SERVICE_KEY = _clean_env(os.getenv("SUPABASE_SERVICE_KEY") or "")

if SUPABASE_URL and not SUPABASE_URL.startswith("http"):
    SUPABASE_URL = "https://" + SUPABASE_URL
if SUPABASE_URL.endswith("/"):
    SUPABASE_URL = SUPABASE_URL.rstrip("/")

# JWT: secret partagé avec le service d'authentification
JWT_SECRET = _clean_env(os.getenv("JWT_SECRET") or "")
JWT_ALGORITHM = _clean_env(os.getenv("JWT_ALGORITHM") or "HS256")

COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "access_token")

# CORS / hôtes autorisés
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1").split(",") if h.strip()]

# VNPay: code marchand, secret HMAC, passerelle et URL de retour navigateur
VNPAY_TMNCODE = _clean_env(os.getenv("VNPAY_TMNCODE") or "")
VNPAY_HASH_SECRET = _clean_env(os.getenv("VNPAY_HASH_SECRET") or "")
VNPAY_URL = _clean_env(os.getenv("VNPAY_URL") or "https://sandbox.vnpayment.vn/paymentv2/vpcpay.html")
VNPAY_RETURN_URL = _clean_env(os.getenv("VNPAY_RETURN_URL") or "http://localhost:4000/api/v1/payments/vnpay/return")

# Stripe: clé secrète et secret webhook
STRIPE_SECRET_KEY = _clean_env(os.getenv("STRIPE_SECRET_KEY") or "")
STRIPE_WEBHOOK_SECRET = _clean_env(os.getenv("STRIPE_WEBHOOK_SECRET") or "")
STRIPE_CURRENCY = _clean_env(os.getenv("STRIPE_CURRENCY") or "usd")

# Front: base des URLs de redirection après paiement
FRONTEND_URL = _clean_env(os.getenv("FRONTEND_URL") or "http://localhost:3000")


@dataclass(frozen=True)
class VNPaySettings:
    tmn_code: str
    hash_secret: str
    base_url: str
    return_url: str


@dataclass(frozen=True)
class StripeSettings:
    secret_key: str
    webhook_secret: str
    frontend_url: str
    currency: str = "usd"


def get_vnpay_settings() -> VNPaySettings:
    """Réglages VNPay figés au moment de l'appel (passés explicitement aux adaptateurs)."""
    return VNPaySettings(
        tmn_code=VNPAY_TMNCODE,
        hash_secret=VNPAY_HASH_SECRET,
        base_url=VNPAY_URL,
        return_url=VNPAY_RETURN_URL,
    )


def get_stripe_settings() -> StripeSettings:
    """Réglages Stripe figés; frontend_url sans slash final."""
    return StripeSettings(
        secret_key=STRIPE_SECRET_KEY,
        webhook_secret=STRIPE_WEBHOOK_SECRET,
        frontend_url=FRONTEND_URL.rstrip("/"),
        currency=STRIPE_CURRENCY,
    )
