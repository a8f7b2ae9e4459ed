# camfleet/routers/admin.py
from fastapi import APIRouter, Depends, HTTPException, status
from camfleet.dependencies import get_admin
from camfleet.schemas.dashboard import LoginIn
from camfleet.services.admin_session import WRONG_PASSWORD, AdminSession

router = APIRouter()


@router.get("/admin/status", summary="Is admin mode on for this browser?")
def admin_status(admin: AdminSession = Depends(get_admin)):
    return {"is_admin": admin.is_admin}


@router.post("/admin/login")
def login(body: LoginIn, admin: AdminSession = Depends(get_admin)):
    if not admin.login(body.password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=WRONG_PASSWORD)
    return {"is_admin": True}


@router.post("/admin/logout")
def logout(admin: AdminSession = Depends(get_admin)):
    admin.logout()
    return {"is_admin": False}
