"""
Authentification déléguée au fournisseur d'identité (Supabase Auth).
- Jeton: en-tête Authorization: Bearer <token>, sinon cookie sb_access.
- require_user: dépendance FastAPI renvoyant {"id", "email"} ou 401.
"""
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, Request

from marketplace.infra.supabase_client import get_anon_supabase

COOKIE_NAME = "sb_access"

def extract_token(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header[7:].strip()
        if token:
            return token
    return request.cookies.get(COOKIE_NAME) or None

def get_user_from_access_token(access_token: str) -> Dict[str, Any]:
    """Récupère et normalise l'utilisateur depuis supabase.auth.get_user(access_token)."""
    res = get_anon_supabase().auth.get_user(access_token)
    user = getattr(res, "user", None)
    if user is None:
        return {}
    if isinstance(user, dict):
        return {"id": user.get("id"), "email": user.get("email")}
    return {"id": getattr(user, "id", None), "email": getattr(user, "email", None)}

def get_current_user(request: Request) -> Dict[str, Any]:
    token = extract_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Non authentifié")
    try:
        user = get_user_from_access_token(token)
    except Exception:
        raise HTTPException(status_code=401, detail="Session expirée, veuillez vous connecter")
    if not user.get("id"):
        raise HTTPException(status_code=401, detail="Session expirée, veuillez vous connecter")
    return user

def require_user(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    return user
