from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ..dependencies import get_current_user
from ..services.auth_svc import login

router = APIRouter()


class LoginBody(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


@router.post("/api/auth/login")
def api_auth_login(body: LoginBody):
    if not body.username or not body.password:
        raise HTTPException(status_code=400, detail="Username and password required")
    res = login(body.username, body.password)
    if res is None:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return {"success": True, **res}


@router.get("/api/auth/verify")
def api_auth_verify(user: dict = Depends(get_current_user)):
    return {"valid": True, "user": user}
