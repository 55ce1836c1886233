"""
API 标准化响应 + 错误分类

每次调用必定返回二者之一：
- 成功信封：response 为声明的结果类型
- 失败信封：error 为 {code, description}

错误分类（kind）：
- transient_failure:      随机注入的失败（500），可直接重试，状态未改变
- precondition_violation: 下标越界（400），调用方错误，修正参数后再重试
- unexpected_fault:       提交前的意外异常（500），状态未改变
"""

from dataclasses import dataclass
from typing import Any, Generic, Literal, TypeVar

T = TypeVar("T")

ErrorKind = Literal["transient_failure", "precondition_violation", "unexpected_fault"]

INTERNAL_ERROR = 500
INDEX_OUT_OF_BOUND = 400


@dataclass(frozen=True)
class ApiError:
    """失败信封中的错误描述"""

    code: int
    description: str
    kind: ErrorKind

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "description": self.description}

    @classmethod
    def transient(cls) -> "ApiError":
        return cls(INTERNAL_ERROR, "internal error", "transient_failure")

    @classmethod
    def index_out_of_bound(cls) -> "ApiError":
        return cls(INDEX_OUT_OF_BOUND, "index out of bound", "precondition_violation")

    @classmethod
    def unexpected(cls) -> "ApiError":
        return cls(INTERNAL_ERROR, "internal error", "unexpected_fault")


class ApiResponseError(Exception):
    """unwrap() 遇到失败信封时抛出"""

    def __init__(self, error: ApiError):
        super().__init__(f"{error.code} {error.description}")
        self.error = error


class IndexOutOfBound(Exception):
    """服务内部用于在修改前短路的越界信号，不会泄漏给调用方"""


@dataclass(frozen=True)
class ApiResponse(Generic[T]):
    """API 调用标准化结果，response 与 error 互斥"""

    response: T | None = None
    error: ApiError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, response: T) -> "ApiResponse[T]":
        """快捷构造成功结果"""
        return cls(response=response)

    @classmethod
    def fail(cls, error: ApiError) -> "ApiResponse[T]":
        """快捷构造失败结果"""
        return cls(error=error)

    def unwrap(self) -> T:
        """取出结果，失败时抛 ApiResponseError"""
        if self.error is not None:
            raise ApiResponseError(self.error)
        return self.response  # type: ignore[return-value]

    def to_dict(self) -> dict[str, Any]:
        """序列化为 {"response": ...} 或 {"error": {...}}"""
        if self.error is not None:
            return {"error": self.error.to_dict()}
        response: Any = self.response
        if isinstance(response, list):
            response = [r.model_dump() if hasattr(r, "model_dump") else r for r in response]
        return {"response": response}
