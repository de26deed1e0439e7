from fastapi import APIRouter, Depends
from utils.permissions import require_permissions


router = APIRouter(
    prefix="/admin",
    tags=["admin"]
)


@router.get("/ping", dependencies=[Depends(require_permissions("USER_MANAGE"))])
async def admin_ping():
    return {"ok": True, "msg": "Only admins can see this."}
