from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from marketplace.health.service import health_supabase_info
from marketplace.infra.supabase_client import get_service_supabase
from marketplace.utils.rate_limit import rate_limit_health_info

router = APIRouter(prefix="/health", tags=["Health"])

@router.get("")
def health_root(request: Request):
    return {"ok": True, "rate_limit": rate_limit_health_info(request)}

@router.get("/supabase")
def health_supabase():
    return JSONResponse(health_supabase_info(get_service_supabase))
