"""GatewayConfig -- 认证与 HTTP 层配置

从环境变量加载。CHAINTODO_JWT_SECRET 未设置时生成进程级临时密钥，
重启后已签发的 token 全部失效。
"""

import os
import secrets

import structlog
from pydantic import BaseModel, Field, SecretStr, ValidationError

log = structlog.get_logger()


class GatewayConfig(BaseModel):
    """Gateway 配置

    环境变量:
        CHAINTODO_JWT_SECRET: JWT 签名密钥（HS256）
        CHAINTODO_JWT_EXPIRES_S: token 有效期（秒，默认 7200）
        CHAINTODO_CORS_ORIGINS: 允许的跨域来源，逗号分隔
        CHAINTODO_BCRYPT_ROUNDS: bcrypt 代价因子（默认 10）
    """

    jwt_secret: SecretStr = Field(description="JWT 签名密钥")
    jwt_expires_s: int = Field(default=7200, ge=60, description="token 有效期（秒）")
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000"],
        description="允许的跨域来源",
    )
    bcrypt_rounds: int = Field(default=10, ge=4, le=31, description="bcrypt 代价因子")


_INT_ENV = {
    "CHAINTODO_JWT_EXPIRES_S": "jwt_expires_s",
    "CHAINTODO_BCRYPT_ROUNDS": "bcrypt_rounds",
}


def load_gateway_config() -> GatewayConfig:
    """从环境变量加载 Gateway 配置"""
    kwargs: dict = {}

    secret = os.environ.get("CHAINTODO_JWT_SECRET", "")
    if not secret:
        secret = secrets.token_urlsafe(32)
        log.warning(
            "jwt_secret_ephemeral",
            message="CHAINTODO_JWT_SECRET 未设置，使用临时密钥；重启后 token 失效",
        )
    kwargs["jwt_secret"] = SecretStr(secret)

    for env_var, field in _INT_ENV.items():
        if val := os.environ.get(env_var):
            try:
                kwargs[field] = int(val)
            except ValueError:
                log.warning("invalid_gateway_config", env_var=env_var, value=val)

    if val := os.environ.get("CHAINTODO_CORS_ORIGINS"):
        kwargs["cors_origins"] = [o.strip() for o in val.split(",") if o.strip()]

    try:
        return GatewayConfig(**kwargs)
    except ValidationError as e:
        for field in {err["loc"][0] for err in e.errors() if err["loc"]}:
            log.warning("invalid_gateway_config", field=field, value=kwargs.pop(field, None))
        return GatewayConfig(**kwargs)
