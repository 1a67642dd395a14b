"""
Construction des clients Supabase.
- Aucun client global implicite: chaque appelant reçoit un client construit explicitement.
- create_supabase_client échoue immédiatement si l'URL ou la clé manquent.
"""
from functools import lru_cache
from supabase import create_client, Client
from marketplace.config import SUPABASE_URL, SUPABASE_ANON, SUPABASE_SERVICE_KEY

def create_supabase_client(url: str, key: str) -> Client:
    if not url:
        raise RuntimeError("SUPABASE_URL manquant")
    if not key:
        raise RuntimeError("Clé Supabase manquante")
    return create_client(url, key)

@lru_cache(maxsize=1)
def get_service_supabase() -> Client:
    """Client service-role (bypass RLS): écritures webhook et lectures serveur."""
    if not SUPABASE_SERVICE_KEY:
        raise RuntimeError("SUPABASE_SERVICE_KEY manquant pour get_service_supabase()")
    return create_supabase_client(SUPABASE_URL, SUPABASE_SERVICE_KEY)

@lru_cache(maxsize=1)
def get_anon_supabase() -> Client:
    """Client 'anon': utilisé pour résoudre un access token via supabase.auth."""
    return create_supabase_client(SUPABASE_URL, SUPABASE_ANON)
