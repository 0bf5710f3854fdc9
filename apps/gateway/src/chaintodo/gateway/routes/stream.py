"""SSE 实时通道路由

GET /api/stream/owner/{address}: 订阅 owner 房间，推送 tasks_updated 信号 + 心跳保活。
信号不携带任务内容，客户端收到后重新拉取 /api/tasks。
"""

import asyncio
import json

from chaintodo.core.config import SSE_HEARTBEAT_INTERVAL
from eth_utils import is_address
from fastapi import APIRouter, Depends
from sse_starlette.sse import EventSourceResponse

from ..deps import get_sse_hub
from ..errors import error_response
from ..services.sse_hub import SSEHub

router = APIRouter()


@router.get("/api/stream/owner/{address}")
async def stream_owner_updates(
    address: str,
    sse_hub: SSEHub = Depends(get_sse_hub),
):
    """SSE 事件流端点

    1. 校验地址格式
    2. 注册到 owner 房间
    3. 收到信号时推送 tasks_updated
    4. 超时无信号时发送心跳注释
    """
    if not is_address(address):
        return error_response(400, "INVALID_ADDRESS", f"{address} is not a valid address")
    room = address.lower()

    async def event_generator():
        queue = await sse_hub.subscribe(room)
        try:
            while True:
                try:
                    message_type = await asyncio.wait_for(
                        queue.get(), timeout=SSE_HEARTBEAT_INTERVAL
                    )
                    yield {
                        "event": message_type,
                        "data": json.dumps({"owner": room}),
                    }
                except TimeoutError:
                    yield {"comment": "heartbeat"}
        finally:
            await sse_hub.unsubscribe(room, queue)

    return EventSourceResponse(event_generator())
