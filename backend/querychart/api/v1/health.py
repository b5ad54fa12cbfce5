from fastapi import APIRouter
from ...db.session import ping

router = APIRouter()

@router.get("/health")
def health():
    return {"status": "ok", "database": "up" if ping() else "down"}
