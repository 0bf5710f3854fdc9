"""用户路由

GET /api/user/me: 当前用户资料。
POST /api/user/link-wallet: 关联钱包（只能关联一次，同一地址幂等）。
DELETE /api/user/wallet: 显式解除钱包关联。
"""

from chaintodo.core.models import User
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..deps import get_current_user, get_user_service
from ..errors import ApiError
from ..services.user_service import UserService, UserServiceError

router = APIRouter()


class UserProfile(BaseModel):
    """用户资料（不含密码哈希）"""

    user_id: str
    username: str
    email: str
    wallet_address: str | None
    created_at: str


class LinkWalletRequest(BaseModel):
    wallet_address: str = Field(description="钱包地址（0x 开头的 20 字节十六进制）")


def _profile(user: User) -> UserProfile:
    return UserProfile(
        user_id=user.user_id,
        username=user.username,
        email=user.email,
        wallet_address=user.wallet_address,
        created_at=user.created_at.isoformat(),
    )


@router.get("/api/user/me", response_model=UserProfile)
async def me(user: User = Depends(get_current_user)):
    return _profile(user)


@router.post("/api/user/link-wallet", response_model=UserProfile)
async def link_wallet(
    body: LinkWalletRequest,
    user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    try:
        updated = await service.link_wallet(user, body.wallet_address)
    except UserServiceError as e:
        raise ApiError(e.status_code, e.code, str(e)) from e
    return _profile(updated)


@router.delete("/api/user/wallet", response_model=UserProfile)
async def reset_wallet(
    user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    return _profile(await service.reset_wallet(user))
