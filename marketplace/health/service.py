from urllib.parse import urlparse
import socket

from marketplace.config import SUPABASE_URL
from marketplace.infra.document_store import COLLECTIONS

def _check_table(client, name: str):
    try:
        res = client.table(name).select("id").limit(1).execute()
        return {"ok": True, "rows": len(res.data or [])}
    except Exception as e:
        return {"ok": False, "error": str(e)}

def health_supabase_info(client_factory):
    parsed = urlparse(SUPABASE_URL) if SUPABASE_URL else None
    hostname = parsed.hostname if parsed else None
    info = {
        "supabase_url": SUPABASE_URL,
        "hostname": hostname,
        "dns_ok": None,
        "connect_ok": False,
        "error": None,
        "tables": {},
    }
    if hostname:
        try:
            socket.getaddrinfo(hostname, 443)
            info["dns_ok"] = True
        except OSError as e:
            info["dns_ok"] = False
            info["error"] = str(e)
    try:
        client = client_factory()
        for table in COLLECTIONS.values():
            info["tables"][table] = _check_table(client, table)
        info["connect_ok"] = True
    except Exception as e:
        info["error"] = str(e)
    return info
