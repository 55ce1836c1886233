"""
Todo 数据模型

TodoList / Todo 对应远端后端的清单与条目 shape。
两者都没有对外暴露的稳定标识：调用方只能通过下标定位。
对外返回或广播的数据一律是深拷贝，调用方改动拷贝不会影响存储。
"""

from pydantic import BaseModel, Field


class Todo(BaseModel):
    """单个 Todo 条目"""

    description: str
    done: bool = False


class TodoList(BaseModel):
    """具名 Todo 清单，name 不要求唯一"""

    name: str
    items: list[Todo] = Field(default_factory=list)


def copy_todo(item: Todo | dict) -> Todo:
    """入参统一转为全新的 Todo（兼容 dict 和 Todo 两种形式）"""
    if isinstance(item, Todo):
        return item.model_copy(deep=True)
    return Todo.model_validate(item)


def moved_position(source_index: int, dest_index: int, length: int) -> int:
    """
    移动条目时的实际插入位置。

    先移除 source 处的条目：dest 在 source 之后时，后续位置整体前移一位，
    实际插入点为 dest - 1；否则 dest 不变。length 为移除后的清单长度，
    结果截断到 [0, length]。
    """
    position = dest_index - 1 if dest_index > source_index else dest_index
    return max(0, min(position, length))
