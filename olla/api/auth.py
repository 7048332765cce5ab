from typing import Optional

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, Field

from olla.core.auth import get_backend_client, persist_session
from olla.core.errors import AppError
from olla.features.auth import service as auth_service
from olla.services.backend_client import BackendClient

router = APIRouter()


class SignInIn(BaseModel):
    email: str
    password: str


class SignUpIn(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    confirm_password: Optional[str] = Field(default=None, alias="confirmPassword")
    first_name: Optional[str] = Field(default=None, alias="firstName")
    last_name: Optional[str] = Field(default=None, alias="lastName")


@router.post("/sign-in")
async def sign_in(data: SignInIn, response: Response, client: BackendClient = Depends(get_backend_client)):
    """Password sign-in restricted to professional and admin accounts.

    A failed attempt also drops any session cookies the browser still holds.
    """
    try:
        result = await auth_service.sign_in(client, data.email, data.password)
    except AppError as e:
        e.clear_session = True
        raise
    persist_session(client, response)
    return {
        "success": True,
        "user": result.user.model_dump(),
        "isAdmin": result.is_admin,
    }


@router.post("/sign-up", status_code=201)
async def sign_up(data: SignUpIn, response: Response, client: BackendClient = Depends(get_backend_client)):
    user = await auth_service.sign_up(
        client,
        email=data.email,
        password=data.password,
        confirm_password=data.confirm_password,
        first_name=data.first_name,
        last_name=data.last_name,
    )
    persist_session(client, response)
    return {
        "success": True,
        "user": user.model_dump(),
        "message": "Registration successful. Redirecting...",
    }


@router.post("/sign-out")
async def sign_out(response: Response, client: BackendClient = Depends(get_backend_client)):
    await auth_service.sign_out(client)
    persist_session(client, response)
    return {"success": True}
