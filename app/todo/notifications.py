"""
广播通知数据结构

每种成功的修改对应一种不可变消息（按 type 区分），载荷足以在只读镜像上重放同一修改。
TodoSocket 派发时为消息盖上全局递增的 sequence_id，得到 Notification。
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from app.todo.schemas import Todo, TodoList, copy_todo, moved_position


class _Message(BaseModel):
    model_config = ConfigDict(frozen=True)

    def apply(self, lists: list[TodoList]) -> None:
        """在镜像清单上重放本次修改"""
        raise NotImplementedError


class CreateListMessage(_Message):
    """新建清单：携带完整清单（创建时条目为空）"""

    type: Literal["createList"] = "createList"
    name: str
    items: tuple[Todo, ...] = ()

    def apply(self, lists: list[TodoList]) -> None:
        lists.append(TodoList(name=self.name, items=[copy_todo(t) for t in self.items]))


class DeleteListMessage(_Message):
    type: Literal["deleteList"] = "deleteList"
    index: int

    def apply(self, lists: list[TodoList]) -> None:
        del lists[self.index]


class AddItemMessage(_Message):
    type: Literal["addItem"] = "addItem"
    list_index: int
    item: Todo

    def apply(self, lists: list[TodoList]) -> None:
        lists[self.list_index].items.append(copy_todo(self.item))


class RemoveItemMessage(_Message):
    type: Literal["removeItem"] = "removeItem"
    list_index: int
    item_index: int

    def apply(self, lists: list[TodoList]) -> None:
        del lists[self.list_index].items[self.item_index]


class MoveItemMessage(_Message):
    """移动条目：记录原始 dest_index（未做位移修正）"""

    type: Literal["moveItem"] = "moveItem"
    list_index: int
    source_index: int
    dest_index: int

    def apply(self, lists: list[TodoList]) -> None:
        items = lists[self.list_index].items
        item = items.pop(self.source_index)
        items.insert(moved_position(self.source_index, self.dest_index, len(items)), item)


class EditItemMessage(_Message):
    type: Literal["editItem"] = "editItem"
    list_index: int
    item_index: int
    new_value: Todo

    def apply(self, lists: list[TodoList]) -> None:
        lists[self.list_index].items[self.item_index] = copy_todo(self.new_value)


RawMessage = Annotated[
    Union[
        CreateListMessage,
        DeleteListMessage,
        AddItemMessage,
        RemoveItemMessage,
        MoveItemMessage,
        EditItemMessage,
    ],
    Field(discriminator="type"),
]


class Notification(BaseModel):
    """已盖序号的广播通知"""

    model_config = ConfigDict(frozen=True)

    sequence_id: int
    message: RawMessage

    @property
    def kind(self) -> str:
        return self.message.type
