"""Task Domain Model

tasks 表是链上事件的镜像，以 (owner, task_id) 唯一标识。
content / completed 来自链上；priority / tags / category / due_date 仅存在于链下，
事件处理除插入时赋默认值外不得修改。
"""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from .enums import Priority, TaskStatus


class Task(BaseModel):
    """Task 数据模型"""

    owner: str = Field(description="所有者地址（小写十六进制）")
    task_id: int = Field(ge=0, description="链上任务编号")
    content: str = Field(default="", description="任务内容（链上）")
    completed: bool = Field(default=False, description="完成标记（链上）")
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="任务状态")
    priority: Priority = Field(default=Priority.MEDIUM, description="优先级（链下）")
    tags: list[str] = Field(default_factory=list, description="标签（链下）")
    category: str = Field(default="", description="分类（链下）")
    due_date: datetime | None = Field(default=None, description="截止时间（链下）")
    created_at: datetime = Field(description="创建时间")
    updated_at: datetime = Field(description="更新时间")

    @field_validator("owner")
    @classmethod
    def lower_owner(cls, value: str) -> str:
        return value.lower()


class TaskMetadataUpdate(BaseModel):
    """链下元数据更新请求

    仅 model_fields_set 中出现的字段会被写入；
    due_date 显式传 null 表示清除截止时间。
    """

    due_date: datetime | None = None
    status: TaskStatus | None = None
    priority: Priority | None = None
    tags: list[str] | None = None
    category: str | None = None

    def to_changes(self) -> dict:
        """转换为待写入的列 -> 值映射"""
        changes: dict = {}
        for name in self.model_fields_set:
            value = getattr(self, name)
            if value is None and name != "due_date":
                continue
            changes[name] = value
        return changes
