# marketplace.config
from pathlib import Path
import os
from dotenv import load_dotenv

# Calculer le chemin du projet puis charger .env de manière explicite
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=True)

"""
Configuration centrale du backend marketplace.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Normalise et expose les secrets/URLs (Supabase, Stripe), CORS/hosts
- Fournit la devise, le mode de routage des paiements et l'origine du site pour le checkout
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

def _split_env(v: str) -> list:
    """Découpe une valeur 'a,b,c' en liste nettoyée (entrées vides ignorées)."""
    return [_clean_env(part) for part in (v or "").split(",") if _clean_env(part)]

# Supabase: URLs et clés (anon/service)
# - SUPABASE_URL peut parfois être sans schéma: on préfixe en https:// si nécessaire
SUPABASE_URL = _clean_env(os.getenv("SUPABASE_URL") or os.getenv("NEXT_PUBLIC_SUPABASE_URL") or "")
SUPABASE_ANON = _clean_env(os.getenv("SUPABASE_ANON_KEY") or os.getenv("SUPABASE_KEY") or "")
SUPABASE_SERVICE_KEY = _clean_env(os.getenv("SUPABASE_SERVICE_KEY") or "")

if SUPABASE_URL and not SUPABASE_URL.startswith("http"):
    SUPABASE_URL = "https://" + SUPABASE_URL
if SUPABASE_URL.endswith("/"):
    SUPABASE_URL = SUPABASE_URL.rstrip("/")

COOKIE_SECURE = (os.getenv("COOKIE_SECURE", "false").lower() == "true")

# CORS (dev)
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1").split(",") if h.strip()]

# Stripe: clé secrète, secrets webhook (plateforme + comptes connectés, séparés par des virgules)
STRIPE_SECRET_KEY = _clean_env(os.getenv("STRIPE_SECRET_KEY") or "")
STRIPE_WEBHOOK_SECRETS = _split_env(os.getenv("STRIPE_WEBHOOK_SECRET") or "")
STRIPE_CONNECT_CLIENT_ID = _clean_env(os.getenv("STRIPE_CONNECT_CLIENT_ID") or "")

# Checkout: devise unique et mode de routage ("destination" ou "direct")
CHECKOUT_CURRENCY = _clean_env(os.getenv("CHECKOUT_CURRENCY") or "sgd").lower()
CHARGE_MODE = _clean_env(os.getenv("CHARGE_MODE") or "destination").lower()

# Origine utilisée pour success/cancel quand la requête n'a pas d'en-tête Origin
SITE_URL = _clean_env(os.getenv("SITE_URL") or os.getenv("NEXT_PUBLIC_SITE_URL") or "http://localhost:3000").rstrip("/")
