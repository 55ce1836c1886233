"""
TodoMirror：客户端只读镜像

订阅 TodoSocket，按收到的通知在本地重放修改，得到与服务端一致的清单副本。
序号不连续时（订阅前的历史或中途丢失）记录缺口，此后镜像不再保证一致。
"""

import structlog

from app.todo.notifications import Notification
from app.todo.schemas import TodoList

log = structlog.get_logger()


class TodoMirror:
    """基于通知重放的清单镜像"""

    name = "mirror"

    def __init__(self, initial: list[TodoList] | None = None):
        self._lists: list[TodoList] = [lst.model_copy(deep=True) for lst in initial or []]
        self.last_sequence_id: int | None = None
        self.missed: list[int] = []
        self.received = 0

    @property
    def consistent(self) -> bool:
        return not self.missed

    def handle_message(self, message: Notification) -> None:
        expected = None if self.last_sequence_id is None else self.last_sequence_id + 1
        if expected is not None and message.sequence_id != expected:
            self.missed.extend(range(expected, message.sequence_id))
            log.warning(
                "镜像检测到序号缺口",
                expected=expected,
                sequence_id=message.sequence_id,
            )
        self.last_sequence_id = message.sequence_id
        self.received += 1
        message.message.apply(self._lists)

    def snapshot(self) -> list[TodoList]:
        """镜像当前状态的深拷贝"""
        return [lst.model_copy(deep=True) for lst in self._lists]
