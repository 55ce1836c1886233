"""
测试用监听者与数据构造
"""

from app.todo.notifications import Notification
from app.todo.schemas import Todo


class Recorder:
    """按投递顺序记录收到的通知"""

    def __init__(self, name: str = "recorder"):
        self.name = name
        self.messages: list[Notification] = []

    def handle_message(self, message: Notification) -> None:
        self.messages.append(message)

    @property
    def sequence_ids(self) -> list[int]:
        return [m.sequence_id for m in self.messages]

    @property
    def kinds(self) -> list[str]:
        return [m.kind for m in self.messages]


class ExplodingListener:
    """每次处理都抛异常"""

    name = "exploding"

    def __init__(self):
        self.calls = 0

    def handle_message(self, message: Notification) -> None:
        self.calls += 1
        raise RuntimeError("listener blew up")


def todo(description: str, done: bool = False) -> Todo:
    return Todo(description=description, done=done)


async def seed(api, name: str, *descriptions: str) -> int:
    """建一个清单并按顺序加入条目，返回清单下标"""
    index = (await api.create_list(name)).unwrap()
    for description in descriptions:
        (await api.add_todo(index, todo(description))).unwrap()
    return index


def descriptions(todo_list) -> list[str]:
    return [item.description for item in todo_list.items]
