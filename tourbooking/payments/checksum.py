"""
Signature HMAC des paramètres VNPay (pas de réseau, pas de DB).

Contrat en deux passes:
- la chaîne signée est la forme canonique NON encodée (clés triées, key=value&...)
- l'URL de redirection utilise la même liste triée, mais encodée (RFC 3986)
"""
import hashlib
import hmac
from typing import Mapping
from urllib.parse import quote, urlencode

HASH_KEYS = ("vnp_SecureHash", "vnp_SecureHashType")

# module tourbooking.payments.checksum
def canonical_query(params: Mapping[str, str]) -> str:
    """Clés triées par ordre croissant, valeurs laissées telles quelles."""
    return "&".join(f"{key}={params[key]}" for key in sorted(params))

def encode_query(params: Mapping[str, str]) -> str:
    """Même ordre que canonical_query, valeurs percent-encodées (espaces -> %20)."""
    return urlencode([(key, str(params[key])) for key in sorted(params)], quote_via=quote, safe="")

def sign(params: Mapping[str, str], secret: str) -> str:
    """
    HMAC-SHA512 (hex minuscule) de la forme canonique.
    - N'enlève aucune clé: l'appelant exclut lui-même vnp_SecureHash.
    """
    data = canonical_query(params).encode("utf-8")
    return hmac.new((secret or "").encode("utf-8"), data, hashlib.sha512).hexdigest()

def verify(params: Mapping[str, str], provided_hash: str, secret: str) -> bool:
    """
    Recalcule la signature sans les champs de hash et compare en temps constant.
    - Comparaison stricte, sensible à la casse.
    """
    if not provided_hash:
        return False
    clean = {k: v for k, v in params.items() if k not in HASH_KEYS}
    expected = sign(clean, secret)
    return hmac.compare_digest(expected.encode("utf-8"), str(provided_hash).encode("utf-8"))
