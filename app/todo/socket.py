"""
TodoSocket：进程内有序广播通道

模拟推送通道：每次成功修改由 TodoApi 交给 dispatch，盖上全局序号后
同步推送给当前所有监听者。

语义：
- 序号从 0 开始，每次 dispatch 恰好 +1（与监听者数量无关，无监听者也递增）
- 按订阅顺序投递；投递期间的订阅/退订只影响下一次 dispatch
- 无历史回放：晚订阅者从下一个序号开始接收
- 每个监听者拿到独立的深拷贝，互不影响
- 单个监听者抛异常：记录日志并继续投递下一个，绝不回传给修改方
"""

from typing import Callable, Protocol, runtime_checkable

import structlog

from app.observability.metrics import LISTENER_ERROR_TOTAL, NOTIFICATION_TOTAL
from app.todo.notifications import Notification, RawMessage

log = structlog.get_logger()


@runtime_checkable
class TodoListener(Protocol):
    """监听者只需实现 handle_message，返回值被忽略"""

    def handle_message(self, message: Notification) -> None: ...


class CallbackListener:
    """把普通函数包装成监听者"""

    def __init__(self, callback: Callable[[Notification], None], name: str | None = None):
        self._callback = callback
        self.name = name or getattr(callback, "__name__", "callback")

    def handle_message(self, message: Notification) -> None:
        self._callback(message)

    def __repr__(self) -> str:
        return f"CallbackListener({self.name})"


def _listener_name(listener: TodoListener) -> str:
    return getattr(listener, "name", None) or type(listener).__name__


class TodoSocket:
    """有序广播通道"""

    def __init__(self):
        self._listeners: list[TodoListener] = []
        self._sequence_id = 0

    def add_listener(self, listener: TodoListener) -> None:
        """订阅，不回放历史通知"""
        self._listeners.append(listener)
        log.debug("监听者已订阅", listener=_listener_name(listener), next_sequence_id=self._sequence_id)

    def remove_listener(self, listener: TodoListener) -> None:
        """退订（按对象身份匹配），未订阅时静默忽略"""
        self._listeners = [current for current in self._listeners if current is not listener]

    @property
    def listeners(self) -> list[TodoListener]:
        return list(self._listeners)

    @property
    def next_sequence_id(self) -> int:
        """下一次 dispatch 将使用的序号"""
        return self._sequence_id

    def dispatch(self, message: RawMessage) -> Notification:
        """盖序号并同步推送给当前所有监听者，返回盖好序号的通知"""
        notification = Notification(sequence_id=self._sequence_id, message=message)
        self._sequence_id += 1
        NOTIFICATION_TOTAL.labels(kind=notification.kind).inc()

        for listener in list(self._listeners):
            try:
                listener.handle_message(notification.model_copy(deep=True))
            except Exception:
                # 监听者故障隔离：不阻断后续投递，也不回传给修改方
                name = _listener_name(listener)
                LISTENER_ERROR_TOTAL.labels(listener=name).inc()
                log.error(
                    "监听者处理通知失败",
                    listener=name,
                    sequence_id=notification.sequence_id,
                    kind=notification.kind,
                    exc_info=True,
                )
        return notification
