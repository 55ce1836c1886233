"""
调用追踪上下文：通过 contextvars 在协程间自动传播 request_id

每次 API 调用在独立 Task 中结算，Task 创建时复制当前上下文，
因此 bind_request 只影响本次调用及其触发的广播日志。
"""

import contextvars
import uuid

import structlog

# ── 全局上下文变量 ──
request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="")


def new_request_id() -> str:
    """生成新的 request_id"""
    return uuid.uuid4().hex[:12]


def get_request_id() -> str:
    return request_id_var.get()


def bind_request(operation: str) -> str:
    """为当前上下文生成 request_id 并绑定到 structlog，返回该 id"""
    request_id = new_request_id()
    request_id_var.set(request_id)
    structlog.contextvars.bind_contextvars(request_id=request_id, operation=operation)
    return request_id
