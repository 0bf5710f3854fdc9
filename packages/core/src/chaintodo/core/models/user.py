"""User Domain Model

一个用户最多关联一个钱包地址；钱包地址在所有用户间唯一。
"""

from datetime import datetime

from pydantic import BaseModel, Field


class User(BaseModel):
    """User 数据模型"""

    user_id: str = Field(description="唯一标识，ULID 格式")
    username: str = Field(description="用户名（唯一）")
    email: str = Field(description="邮箱（唯一，小写）")
    password_hash: str = Field(description="bcrypt 哈希后的密码")
    wallet_address: str | None = Field(default=None, description="关联的钱包地址（小写）")
    created_at: datetime = Field(description="创建时间")
    updated_at: datetime = Field(description="更新时间")
