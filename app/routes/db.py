# app/routes/db.py
from fastapi import APIRouter, Depends

from app.core.deps import get_storage
from app.db.session import test_db_connection
from app.services.storage import SupabaseStorage

router = APIRouter(prefix="/db", tags=["DB"])


@router.get("/ping")
def ping(storage: SupabaseStorage = Depends(get_storage)):
    return {"ok": test_db_connection(), "storage_configured": storage.is_configured()}
