"""
Todo 内存存储层

进程内唯一的权威状态：有序的清单集合。只由 TodoApi 的修改操作写入。

对外接口全部按下标定位（与远端契约保持兼容）；内部为每个清单/条目
分配不透明的稳定 id，仅用于追踪同一对象在位移后的身份，不对外暴露。

每个修改方法都遵循：先校验下标 → 越界抛 IndexOutOfBound（此时未做任何修改）→ 再修改。
"""

import uuid
from dataclasses import dataclass, field

from app.todo.envelope import IndexOutOfBound
from app.todo.schemas import Todo, TodoList, moved_position


def _new_id() -> str:
    return uuid.uuid4().hex


@dataclass
class StoredTodo:
    value: Todo
    id: str = field(default_factory=_new_id)


@dataclass
class StoredList:
    name: str
    items: list[StoredTodo] = field(default_factory=list)
    id: str = field(default_factory=_new_id)

    def snapshot(self) -> TodoList:
        """深拷贝为对外的 TodoList"""
        return TodoList(
            name=self.name,
            items=[stored.value.model_copy(deep=True) for stored in self.items],
        )


def _in_range(index: int, length: int) -> bool:
    return isinstance(index, int) and not isinstance(index, bool) and 0 <= index < length


class TodoStore:
    """清单集合的内存 CRUD"""

    def __init__(self):
        self._lists: list[StoredList] = []

    def __len__(self) -> int:
        return len(self._lists)

    # ── 校验 ──

    def check_list(self, list_index: int) -> StoredList:
        if not _in_range(list_index, len(self._lists)):
            raise IndexOutOfBound(f"list_index={list_index}")
        return self._lists[list_index]

    def check_item(self, list_index: int, item_index: int) -> StoredList:
        todo_list = self.check_list(list_index)
        if not _in_range(item_index, len(todo_list.items)):
            raise IndexOutOfBound(f"list_index={list_index} item_index={item_index}")
        return todo_list

    # ── 读取 ──

    def snapshot(self) -> list[TodoList]:
        """全部清单的深拷贝"""
        return [stored.snapshot() for stored in self._lists]

    def list_ids(self) -> list[str]:
        return [stored.id for stored in self._lists]

    def item_ids(self, list_index: int) -> list[str]:
        return [stored.id for stored in self.check_list(list_index).items]

    # ── 修改 ──

    def append_list(self, name: str) -> int:
        """追加空清单，返回新清单下标"""
        self._lists.append(StoredList(name=name))
        return len(self._lists) - 1

    def delete_list(self, list_index: int) -> None:
        self.check_list(list_index)
        del self._lists[list_index]

    def append_item(self, list_index: int, item: Todo) -> None:
        """item 必须已是调用方无法再引用的拷贝"""
        self.check_list(list_index).items.append(StoredTodo(value=item))

    def remove_item(self, list_index: int, item_index: int) -> None:
        del self.check_item(list_index, item_index).items[item_index]

    def move_item(self, list_index: int, source_index: int, dest_index: int) -> None:
        items = self.check_item(list_index, source_index).items
        # dest_index 必须是真正的 int（2.0、True、"2" 都拒绝），校验通过后才 pop
        if not isinstance(dest_index, int) or isinstance(dest_index, bool):
            raise TypeError(f"dest_index 必须为 int: {dest_index!r}")
        position = moved_position(source_index, dest_index, len(items) - 1)
        stored = items.pop(source_index)
        items.insert(position, stored)

    def replace_item(self, list_index: int, item_index: int, item: Todo) -> None:
        """整体替换条目值，保留条目的稳定 id"""
        self.check_item(list_index, item_index).items[item_index].value = item
