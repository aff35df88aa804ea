from typing import Optional, Dict, Any
import jwt
from tourbooking.config import JWT_SECRET, JWT_ALGORITHM
from .repository import get_user_by_id as _repo_get_user_by_id

def determine_role(role: Optional[str]) -> str:
    if str(role or "").lower() == "admin":
        return "admin"
    return "user"

def decode_access_token(access_token: str) -> Dict[str, Any]:
    """Valide la signature et l'expiration du JWT (secret partagé, HS256 par défaut)."""
    if not JWT_SECRET:
        raise RuntimeError("JWT_SECRET manquant")
    return jwt.decode(access_token, JWT_SECRET, algorithms=[JWT_ALGORITHM])

def get_user_from_token(access_token: str) -> Dict[str, Any]:
    """Normalise l'utilisateur issu du token:
    - Lit la claim id (ou sub) puis charge le profil (table users)
    - Retourne {id, email, role, token}; id None si l'utilisateur n'existe plus
    """
    claims = decode_access_token(access_token)
    uid = claims.get("id") or claims.get("sub")
    row = _repo_get_user_by_id(uid) if uid else None
    if not row:
        return {"id": None, "email": None, "role": "user", "token": access_token}
    return {
        "id": str(row.get("id")),
        "email": row.get("email"),
        "role": determine_role(row.get("role")),
        "token": access_token,
    }
