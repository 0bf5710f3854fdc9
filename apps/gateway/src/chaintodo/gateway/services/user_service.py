"""UserService -- 注册、登录、钱包关联

钱包规则：
- 一个用户最多关联一个钱包；重复关联同一地址幂等
- 关联不同地址必须先显式重置
- 同一地址不能被两个用户关联（数据库唯一索引兜底并发竞态）
"""

import asyncio
import re
from datetime import UTC, datetime

import aiosqlite
import jwt
import structlog
from chaintodo.core.models import User
from chaintodo.core.store import StoreGroup
from eth_utils import is_address
from ulid import ULID

from ..config import GatewayConfig
from .security import (
    MAX_PASSWORD_BYTES,
    decode_token,
    hash_password,
    issue_token,
    verify_password,
)

log = structlog.get_logger()

MIN_PASSWORD_LENGTH = 6

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class UserServiceError(Exception):
    """用户服务异常基类，携带 HTTP 映射信息"""

    status_code = 400
    code = "BAD_REQUEST"


class ValidationFailed(UserServiceError):
    code = "VALIDATION_ERROR"


class UserAlreadyExists(UserServiceError):
    status_code = 409
    code = "USER_EXISTS"


class InvalidCredentials(UserServiceError):
    status_code = 401
    code = "INVALID_CREDENTIALS"


class Unauthorized(UserServiceError):
    status_code = 401
    code = "UNAUTHORIZED"


class WalletConflict(UserServiceError):
    status_code = 409
    code = "WALLET_CONFLICT"


class UserService:
    """用户业务服务"""

    def __init__(self, store_group: StoreGroup, config: GatewayConfig) -> None:
        self._stores = store_group
        self._config = config

    async def register(
        self,
        username: str,
        email: str,
        password: str,
        confirm_password: str,
    ) -> User:
        """注册新用户

        Raises:
            ValidationFailed: 字段不合法
            UserAlreadyExists: 用户名或邮箱已被占用
        """
        username = username.strip()
        email = email.strip().lower()
        if not username:
            raise ValidationFailed("username is required")
        if not _EMAIL_RE.match(email):
            raise ValidationFailed("email is not valid")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationFailed(
                f"password must be at least {MIN_PASSWORD_LENGTH} characters"
            )
        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValidationFailed(f"password must be at most {MAX_PASSWORD_BYTES} bytes")
        if password != confirm_password:
            raise ValidationFailed("passwords do not match")

        user_store = self._stores.user_store
        if await user_store.get_by_email(email) or await user_store.get_by_username(
            username
        ):
            raise UserAlreadyExists("user already exists")

        password_hash = await asyncio.to_thread(
            hash_password, password, self._config.bcrypt_rounds
        )
        now = datetime.now(UTC)
        user = User(
            user_id=str(ULID()),
            username=username,
            email=email,
            password_hash=password_hash,
            created_at=now,
            updated_at=now,
        )
        try:
            async with self._stores.atomic():
                await user_store.create_user(user)
        except aiosqlite.IntegrityError as e:
            # 并发注册：唯一索引兜底
            raise UserAlreadyExists("user already exists") from e

        await log.ainfo("user_registered", user_id=user.user_id)
        return user

    async def authenticate(self, email: str, password: str) -> tuple[User, str]:
        """校验邮箱密码并签发 token

        Raises:
            InvalidCredentials: 邮箱不存在或密码错误
        """
        user = await self._stores.user_store.get_by_email(email.strip().lower())
        if user is None or not await asyncio.to_thread(
            verify_password, password, user.password_hash
        ):
            raise InvalidCredentials("invalid email or password")

        token = issue_token(
            user.user_id,
            self._config.jwt_secret.get_secret_value(),
            self._config.jwt_expires_s,
        )
        await log.ainfo("user_logged_in", user_id=user.user_id)
        return user, token

    async def resolve_token(self, token: str) -> User:
        """token -> 当前用户

        Raises:
            Unauthorized: token 无效、过期或用户不存在
        """
        try:
            user_id = decode_token(token, self._config.jwt_secret.get_secret_value())
        except jwt.InvalidTokenError as e:
            raise Unauthorized("invalid or expired token") from e

        user = await self._stores.user_store.get_user(user_id)
        if user is None:
            raise Unauthorized("user no longer exists")
        return user

    async def link_wallet(self, user: User, wallet_address: str) -> User:
        """关联钱包地址

        Raises:
            ValidationFailed: 地址格式不合法
            WalletConflict: 已关联其他地址，或地址已属于其他用户
        """
        if not is_address(wallet_address):
            raise ValidationFailed("wallet_address is not a valid address")
        address = wallet_address.lower()

        if user.wallet_address == address:
            return user
        if user.wallet_address is not None:
            raise WalletConflict("a different wallet is already linked; reset it first")

        other = await self._stores.user_store.get_by_wallet(address)
        if other is not None and other.user_id != user.user_id:
            raise WalletConflict("wallet is linked to another user")

        now = datetime.now(UTC)
        try:
            async with self._stores.atomic():
                await self._stores.user_store.set_wallet(
                    user.user_id, address, now.isoformat()
                )
        except aiosqlite.IntegrityError as e:
            raise WalletConflict("wallet is linked to another user") from e

        await log.ainfo("wallet_linked", user_id=user.user_id, wallet_address=address)
        return user.model_copy(update={"wallet_address": address, "updated_at": now})

    async def reset_wallet(self, user: User) -> User:
        """显式解除钱包关联（无关联时为空操作）"""
        if user.wallet_address is None:
            return user

        now = datetime.now(UTC)
        async with self._stores.atomic():
            await self._stores.user_store.set_wallet(user.user_id, None, now.isoformat())

        await log.ainfo(
            "wallet_reset",
            user_id=user.user_id,
            wallet_address=user.wallet_address,
        )
        return user.model_copy(update={"wallet_address": None, "updated_at": now})
