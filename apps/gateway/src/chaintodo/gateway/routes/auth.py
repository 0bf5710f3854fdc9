"""认证路由

POST /api/auth/register: 注册（201）。
POST /api/auth/login: 邮箱 + 密码登录，返回 JWT。
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..deps import get_user_service
from ..errors import ApiError
from ..services.user_service import UserService, UserServiceError

router = APIRouter()


class RegisterRequest(BaseModel):
    """注册请求体"""

    username: str = Field(description="用户名")
    email: str = Field(description="邮箱")
    password: str = Field(description="密码（至少 6 位）")
    confirm_password: str = Field(description="确认密码")


class RegisterResponse(BaseModel):
    user_id: str
    username: str
    email: str


class LoginRequest(BaseModel):
    email: str
    password: str


class LoginResponse(BaseModel):
    token: str
    username: str
    wallet_address: str | None


@router.post("/api/auth/register", response_model=RegisterResponse, status_code=201)
async def register(
    body: RegisterRequest,
    service: UserService = Depends(get_user_service),
):
    try:
        user = await service.register(
            body.username, body.email, body.password, body.confirm_password
        )
    except UserServiceError as e:
        raise ApiError(e.status_code, e.code, str(e)) from e

    return RegisterResponse(
        user_id=user.user_id,
        username=user.username,
        email=user.email,
    )


@router.post("/api/auth/login", response_model=LoginResponse)
async def login(
    body: LoginRequest,
    service: UserService = Depends(get_user_service),
):
    try:
        user, token = await service.authenticate(body.email, body.password)
    except UserServiceError as e:
        raise ApiError(e.status_code, e.code, str(e)) from e

    return LoginResponse(
        token=token,
        username=user.username,
        wallet_address=user.wallet_address,
    )
