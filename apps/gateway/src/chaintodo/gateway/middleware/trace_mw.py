"""TraceMiddleware -- 从路径中提取 task_id / owner 绑定到日志上下文

覆盖的路径：
- /api/tasks/{task_id}[/metadata]
- /api/stream/owner/{address}
"""

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response


def extract_trace_context(path: str) -> dict[str, str | int]:
    """解析路径中的追踪字段；无法识别时返回空字典"""
    parts = [p for p in path.split("/") if p]
    context: dict[str, str | int] = {}
    for i, part in enumerate(parts[:-1]):
        following = parts[i + 1]
        if part == "tasks" and following.isdigit():
            context["task_id"] = int(following)
        elif part == "owner" and following.startswith("0x"):
            context["owner"] = following.lower()
    return context


class TraceMiddleware(BaseHTTPMiddleware):
    """任务级追踪中间件"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        context = extract_trace_context(request.url.path)
        if context:
            structlog.contextvars.bind_contextvars(**context)

        return await call_next(request)
