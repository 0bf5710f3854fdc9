"""密码哈希与 JWT 签发

bcrypt 为 CPU 密集操作，由调用方放到线程中执行。
"""

from datetime import UTC, datetime, timedelta

import bcrypt
import jwt

JWT_ALGORITHM = "HS256"

# bcrypt 只使用前 72 字节
MAX_PASSWORD_BYTES = 72


def hash_password(password: str, rounds: int = 10) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds)).decode("ascii")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("ascii"))
    except ValueError:
        return False


def issue_token(
    user_id: str,
    secret: str,
    expires_s: int,
    now: datetime | None = None,
) -> str:
    """签发访问 token（sub = user_id）"""
    issued_at = now or datetime.now(UTC)
    payload = {
        "sub": user_id,
        "iat": issued_at,
        "exp": issued_at + timedelta(seconds=expires_s),
    }
    return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)


def decode_token(token: str, secret: str) -> str:
    """校验 token 并返回 user_id

    Raises:
        jwt.InvalidTokenError: 签名无效、过期或缺少 sub
    """
    payload = jwt.decode(
        token,
        secret,
        algorithms=[JWT_ALGORITHM],
        options={"require": ["sub", "exp"]},
    )
    return str(payload["sub"])
