"""
Dépendances FastAPI d'authentification pour l'API de paiement.

Le jeton (JWT émis par le service d'auth) est lu dans l'en-tête
Authorization: Bearer, sinon dans le cookie de session.
"""
import logging
from fastapi import Request, HTTPException, Depends
from typing import Optional, Dict, Any
from tourbooking.config import COOKIE_NAME

logger = logging.getLogger(__name__)

NOT_AUTHENTICATED = "Non authentifié"
SESSION_EXPIRED = "Session expirée, veuillez vous connecter"
FORBIDDEN = "Accès interdit"

def bearer_or_cookie_token(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header[len("Bearer "):].strip()
        if token:
            return token
    return request.cookies.get(COOKIE_NAME) or None

def get_current_user(request: Request) -> Dict[str, Any]:
    """
    Résout l'appelant en {id, email, role, token}.
    - 401 sans jeton, avec un jeton invalide/expiré ou pour un utilisateur supprimé
    """
    token = bearer_or_cookie_token(request)
    if not token:
        raise HTTPException(status_code=401, detail=NOT_AUTHENTICATED)

    # Import tardif: le service d'auth peut être remplacé en tests
    from tourbooking.auth.service import get_user_from_token
    try:
        user = get_user_from_token(token)
    except Exception as e:
        logger.info("auth.token_rejected path=%s error=%s", request.url.path, type(e).__name__)
        raise HTTPException(status_code=401, detail=SESSION_EXPIRED)
    if not user.get("id"):
        raise HTTPException(status_code=401, detail=SESSION_EXPIRED)
    return user

def require_user(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    return user

def require_admin(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if user.get("role") != "admin":
        raise HTTPException(status_code=403, detail=FORBIDDEN)
    return user
