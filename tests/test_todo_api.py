"""
TodoApi 测试

覆盖：各操作的成功路径、下标越界短路、随机失败、意外异常、
返回值拷贝隔离、移动语义、完成顺序由延迟决定、调用不可取消。
"""

import asyncio
import random

import pytest

from app.config import get_settings
from app.observability.context import get_request_id
from app.todo.api import TodoApi
from app.todo.envelope import INDEX_OUT_OF_BOUND, INTERNAL_ERROR
from app.todo.latency import FixedFaultPolicy, Outcome, RandomFaultPolicy, ScriptedFaultPolicy
from app.todo.mirror import TodoMirror
from app.todo.schemas import Todo, TodoList
from app.todo.socket import CallbackListener

from .fixtures import ExplodingListener, descriptions, seed, todo


class TestCreateAndRead:

    async def test_create_list_returns_index_and_notifies(self, api, recorder):
        first = await api.create_list("work")
        second = await api.create_list("home")

        assert first.ok and first.response == 0
        assert second.response == 1

        lists = (await api.get_todo_lists()).unwrap()
        assert lists[1] == TodoList(name="home", items=[])
        assert recorder.kinds == ["createList", "createList"]
        assert recorder.sequence_ids == [0, 1]
        assert recorder.messages[1].message.name == "home"
        assert recorder.messages[1].message.items == ()

    async def test_list_names_need_not_be_unique(self, api):
        await api.create_list("dup")
        await api.create_list("dup")

        lists = (await api.get_todo_lists()).unwrap()
        assert [lst.name for lst in lists] == ["dup", "dup"]

    async def test_read_is_idempotent_and_does_not_alias_store(self, api):
        await seed(api, "work", "buy milk")

        first = (await api.get_todo_lists()).unwrap()
        second = (await api.get_todo_lists()).unwrap()
        assert first == second

        first[0].items[0].description = "tampered"
        first[0].items.append(todo("sneaky"))
        first[0].name = "renamed"

        third = (await api.get_todo_lists()).unwrap()
        assert third == second

    async def test_read_does_not_notify(self, api, recorder):
        await api.get_todo_lists()
        assert recorder.messages == []

    async def test_added_item_is_copied_on_the_way_in(self, api, recorder):
        index = (await api.create_list("work")).unwrap()
        item = todo("buy milk")
        await api.add_todo(index, item)

        item.description = "changed after the call"

        lists = (await api.get_todo_lists()).unwrap()
        assert descriptions(lists[0]) == ["buy milk"]
        assert recorder.messages[-1].message.item.description == "buy milk"

    async def test_add_accepts_plain_dict(self, api):
        index = (await api.create_list("work")).unwrap()
        assert (await api.add_todo(index, {"description": "walk dog", "done": True})).ok

        lists = (await api.get_todo_lists()).unwrap()
        assert lists[0].items == [Todo(description="walk dog", done=True)]


class TestMutations:

    async def test_delete_list(self, api, recorder):
        await seed(api, "a")
        await seed(api, "b")

        response = await api.delete_list(0)

        assert response.ok and response.response is True
        assert [lst.name for lst in (await api.get_todo_lists()).unwrap()] == ["b"]
        assert recorder.messages[-1].message.index == 0

    async def test_remove_item(self, api, recorder):
        index = await seed(api, "work", "a", "b", "c")

        assert (await api.remove_todo(index, 1)).ok

        lists = (await api.get_todo_lists()).unwrap()
        assert descriptions(lists[0]) == ["a", "c"]
        last = recorder.messages[-1].message
        assert (last.type, last.list_index, last.item_index) == ("removeItem", 0, 1)

    async def test_edit_item_replaces_with_copy(self, api, recorder):
        index = await seed(api, "work", "a")
        new_value = todo("a, but done", done=True)

        assert (await api.edit_todo(index, 0, new_value)).ok
        new_value.done = False

        lists = (await api.get_todo_lists()).unwrap()
        assert lists[0].items == [Todo(description="a, but done", done=True)]
        assert recorder.messages[-1].message.new_value == Todo(description="a, but done", done=True)

    @pytest.mark.parametrize(
        "source, dest, expected",
        [
            (0, 3, ["B", "C", "A", "D"]),
            (3, 0, ["D", "A", "B", "C"]),
            (1, 1, ["A", "B", "C", "D"]),
            (1, 2, ["A", "B", "C", "D"]),
            (0, 4, ["B", "C", "D", "A"]),
            (2, 9, ["A", "B", "D", "C"]),
        ],
    )
    async def test_move_item(self, api, recorder, source, dest, expected):
        index = await seed(api, "work", "A", "B", "C", "D")

        assert (await api.move_todo(index, source, dest)).ok

        lists = (await api.get_todo_lists()).unwrap()
        assert descriptions(lists[0]) == expected
        last = recorder.messages[-1].message
        assert (last.type, last.source_index, last.dest_index) == ("moveItem", source, dest)

    async def test_moved_item_keeps_its_identity(self, api):
        index = await seed(api, "work", "A", "B", "C")
        ids = api.store.item_ids(index)

        await api.move_todo(index, 0, 3)
        await api.edit_todo(index, 2, todo("A edited"))

        assert api.store.item_ids(index) == [ids[1], ids[2], ids[0]]

    async def test_each_mutation_dispatches_exactly_once(self, api, recorder):
        index = await seed(api, "work", "a", "b")
        await api.move_todo(index, 0, 2)
        await api.edit_todo(index, 0, todo("x"))
        await api.remove_todo(index, 0)
        await api.delete_list(index)

        assert recorder.kinds == [
            "createList",
            "addItem",
            "addItem",
            "moveItem",
            "editItem",
            "removeItem",
            "deleteList",
        ]
        assert recorder.sequence_ids == list(range(7))


INVALID_CALLS = [
    ("delete_list negative", lambda api: api.delete_list(-1)),
    ("delete_list past end", lambda api: api.delete_list(1)),
    ("add_todo negative list", lambda api: api.add_todo(-1, todo("x"))),
    ("add_todo past end", lambda api: api.add_todo(1, todo("x"))),
    ("remove_todo bad list", lambda api: api.remove_todo(1, 0)),
    ("remove_todo negative item", lambda api: api.remove_todo(0, -1)),
    ("remove_todo past end item", lambda api: api.remove_todo(0, 5)),
    ("move_todo bad list", lambda api: api.move_todo(3, 0, 0)),
    ("move_todo negative source", lambda api: api.move_todo(0, -1, 0)),
    ("move_todo source past end", lambda api: api.move_todo(0, 1, 0)),
    ("edit_todo bad list", lambda api: api.edit_todo(-1, 0, todo("x"))),
    ("edit_todo past end item", lambda api: api.edit_todo(0, 1, todo("x"))),
    ("non integer index", lambda api: api.remove_todo(0, "0")),
]


class TestIndexValidation:

    @pytest.mark.parametrize("label, call", INVALID_CALLS, ids=[c[0] for c in INVALID_CALLS])
    async def test_invalid_index_rejects_without_mutation(self, api, recorder, label, call):
        await seed(api, "work", "only item")
        before = api.store.snapshot()
        dispatched = len(recorder.messages)

        response = await call(api)

        assert not response.ok
        assert response.error.code == INDEX_OUT_OF_BOUND
        assert response.error.description == "index out of bound"
        assert response.error.kind == "precondition_violation"
        assert api.store.snapshot() == before
        assert len(recorder.messages) == dispatched

    async def test_empty_store_rejects_everything_indexed(self, api, recorder):
        for call in (
            api.delete_list(0),
            api.add_todo(0, todo("x")),
            api.remove_todo(0, 0),
            api.move_todo(0, 0, 1),
            api.edit_todo(0, 0, todo("x")),
        ):
            assert (await call).error.code == INDEX_OUT_OF_BOUND
        assert api.store.snapshot() == []
        assert recorder.messages == []


class TestFailures:

    async def test_transient_failure_changes_nothing(self, socket, recorder):
        api = TodoApi(socket, FixedFaultPolicy(succeeds=False))

        for call in (
            api.get_todo_lists(),
            api.create_list("work"),
            api.delete_list(0),
            api.add_todo(0, todo("x")),
        ):
            response = await call
            assert response.error.code == INTERNAL_ERROR
            assert response.error.description == "internal error"
            assert response.error.kind == "transient_failure"

        assert api.store.snapshot() == []
        assert recorder.messages == []

    async def test_transient_failure_wins_over_index_check(self, socket):
        api = TodoApi(socket, FixedFaultPolicy(succeeds=False))
        response = await api.delete_list(42)
        assert response.error.kind == "transient_failure"

    async def test_unexpected_fault_leaves_store_untouched(self, api, recorder):
        index = await seed(api, "work", "a")
        before = api.store.snapshot()
        dispatched = len(recorder.messages)

        bad_item = await api.add_todo(index, {"done": "not a bool"})
        bad_dest = await api.move_todo(index, 0, "far away")

        for response in (bad_item, bad_dest):
            assert response.error.code == INTERNAL_ERROR
            assert response.error.kind == "unexpected_fault"
        assert api.store.snapshot() == before
        assert len(recorder.messages) == dispatched

    @pytest.mark.parametrize("dest", [2.0, 1.5, True, "2", None])
    async def test_non_integer_destination_keeps_item(self, api, socket, recorder, dest):
        mirror = TodoMirror()
        socket.add_listener(mirror)
        index = await seed(api, "work", "A", "B", "C")
        dispatched = len(recorder.messages)

        response = await api.move_todo(index, 0, dest)

        assert response.error.code == INTERNAL_ERROR
        assert response.error.kind == "unexpected_fault"
        assert descriptions(api.store.snapshot()[0]) == ["A", "B", "C"]
        assert len(recorder.messages) == dispatched
        assert mirror.snapshot() == api.store.snapshot()

    async def test_listener_failure_does_not_reach_caller(self, api, socket, recorder):
        exploding = ExplodingListener()
        socket.add_listener(exploding)

        response = await api.create_list("work")

        assert response.ok and response.response == 0
        assert exploding.calls == 1
        assert recorder.kinds == ["createList"]


class TestScheduling:

    async def test_completion_order_follows_latency(self, socket, recorder):
        policy = ScriptedFaultPolicy([Outcome(delay_ms=50, succeeds=True), Outcome(delay_ms=0, succeeds=True)])
        api = TodoApi(socket, policy)

        slow, fast = await asyncio.gather(api.create_list("slow"), api.create_list("fast"))

        assert fast.response == 0
        assert slow.response == 1
        assert [m.message.name for m in recorder.messages] == ["fast", "slow"]
        assert recorder.sequence_ids == [0, 1]

    async def test_no_effect_before_latency_elapses(self, socket, recorder):
        api = TodoApi(socket, FixedFaultPolicy(delay_ms=30))

        call = asyncio.ensure_future(api.create_list("work"))
        await asyncio.sleep(0.005)
        assert len(api.store) == 0
        assert recorder.messages == []
        assert api.pending == 1

        assert (await call).ok
        assert len(api.store) == 1
        assert api.pending == 0

    async def test_cancelled_caller_does_not_cancel_operation(self, socket, recorder):
        api = TodoApi(socket, FixedFaultPolicy(delay_ms=20))

        caller = asyncio.ensure_future(api.create_list("work"))
        await asyncio.sleep(0)
        caller.cancel()
        with pytest.raises(asyncio.CancelledError):
            await caller

        await api.join()
        assert [lst.name for lst in api.store.snapshot()] == ["work"]
        assert recorder.kinds == ["createList"]

    async def test_sequence_ids_are_gap_free_under_reordering(self, socket, recorder):
        api = TodoApi(socket, RandomFaultPolicy(step_ms=1, max_steps=8, rng=random.Random(7)))
        await seed(api, "work")

        results = await asyncio.gather(
            *(api.add_todo(0, todo(f"item {i}")) for i in range(20)),
            *(api.create_list(f"list {i}") for i in range(10)),
        )

        assert all(r.ok for r in results)
        assert recorder.sequence_ids == list(range(31))


class TestEndToEnd:

    async def test_work_list_scenario(self, api, recorder):
        created = await api.create_list("work")
        assert created.ok and created.response == 0

        added = await api.add_todo(0, {"description": "buy milk", "done": False})
        assert added.ok

        removed = await api.remove_todo(0, 5)
        assert removed.error.code == 400
        assert descriptions((await api.get_todo_lists()).unwrap()[0]) == ["buy milk"]

        edited = await api.edit_todo(0, 0, {"description": "buy oat milk", "done": True})
        assert edited.ok

        final = (await api.get_todo_lists()).unwrap()
        assert final == [TodoList(name="work", items=[Todo(description="buy oat milk", done=True)])]
        assert recorder.kinds == ["createList", "addItem", "editItem"]
        assert recorder.sequence_ids == [0, 1, 2]


class TestRequestContext:

    async def test_listeners_see_the_committing_request_id(self, api, socket):
        seen: list[str] = []
        socket.add_listener(CallbackListener(lambda message: seen.append(get_request_id())))

        await api.create_list("a")
        await api.create_list("b")

        assert all(seen) and len(set(seen)) == 2
        assert get_request_id() == ""


class TestDefaultPolicy:

    @pytest.fixture
    def fresh_settings(self):
        get_settings.cache_clear()
        yield
        get_settings.cache_clear()

    def test_default_policy_follows_settings(self, socket, monkeypatch, fresh_settings):
        monkeypatch.setenv("API_SUCCESS_RATE", "0.4")
        monkeypatch.setenv("API_LATENCY_STEP_MS", "50")
        monkeypatch.setenv("API_LATENCY_MAX_STEPS", "4")

        policy = TodoApi(socket).policy

        assert isinstance(policy, RandomFaultPolicy)
        assert (policy.success_rate, policy.step_ms, policy.max_steps) == (0.4, 50, 4)

    def test_default_policy_draws_random_latency(self, socket, fresh_settings):
        policy = TodoApi(socket).policy

        assert isinstance(policy, RandomFaultPolicy)
        assert policy.success_rate == 1.0
        delays = {policy.decide("create_list").delay_ms for _ in range(300)}
        assert delays <= {step * 100 for step in range(10)}
        assert len(delays) > 1
