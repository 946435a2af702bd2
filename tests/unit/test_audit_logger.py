"""Tests for the hierarchical execution logger."""

import asyncio
import json
from pathlib import Path

import pytest

from actiongate.audit.logger import GENESIS_HASH, HierarchicalLogger
from actiongate.audit.models import LogStatus
from actiongate.exceptions import LogStateError


class TestHierarchicalLogger:
    """Tests for building task trees."""

    @pytest.mark.asyncio
    async def test_start_task(self, audit):
        """A task starts with a PENDING root holding the command."""
        root_id = await audit.start_task("close ticket 12", task_id="t1")
        task = audit.get_task("t1")
        assert task.root.id == root_id
        assert task.root.action == "close ticket 12"
        assert task.root.status == LogStatus.PENDING
        assert task.root.is_root
        assert task.children == []

    @pytest.mark.asyncio
    async def test_duplicate_task_id(self, audit):
        """A task id can only be started once."""
        await audit.start_task("a", task_id="t1")
        with pytest.raises(LogStateError):
            await audit.start_task("b", task_id="t1")

    @pytest.mark.asyncio
    async def test_steps_form_a_tree(self, audit):
        """Steps attach to the root or to a step of the same task."""
        root_id = await audit.start_task("refund order 45", task_id="t1")
        step = await audit.append_step(root_id, "tool_requested", data={"tool": "process_refund"})
        await audit.append_step(root_id, "approval_requested", LogStatus.PENDING, parent_id=step)
        await audit.append_step(root_id, "tool_result", parent_id=step)
        await audit.append_step(root_id, "final_answer")

        tree = audit.get_task(root_id).tree()
        assert [child["action"] for child in tree["children"]] == ["tool_requested", "final_answer"]
        assert [c["action"] for c in tree["children"][0]["children"]] == [
            "approval_requested",
            "tool_result",
        ]

    @pytest.mark.asyncio
    async def test_children_in_chronological_order(self, audit):
        """Entries are returned oldest first, root first."""
        root_id = await audit.start_task("cmd", task_id="t1")
        ids = [await audit.append_step(root_id, f"step_{i}") for i in range(3)]
        assert [e.id for e in audit.entries("t1")] == [root_id, *ids]

    @pytest.mark.asyncio
    async def test_unknown_root(self, audit):
        """Appending to an unknown root fails."""
        with pytest.raises(LogStateError):
            await audit.append_step(999, "step")

    @pytest.mark.asyncio
    async def test_foreign_parent(self, audit):
        """A step cannot hang under another task's entry."""
        first = await audit.start_task("a", task_id="t1")
        second = await audit.start_task("b", task_id="t2")
        step = await audit.append_step(first, "step")
        with pytest.raises(LogStateError):
            await audit.append_step(second, "step", parent_id=step)

    @pytest.mark.asyncio
    async def test_finalize_once(self, audit):
        """A root is finalized exactly once and then accepts no steps."""
        root_id = await audit.start_task("cmd", task_id="t1")
        finalized = await audit.finalize(root_id, LogStatus.SUCCESS, data={"output": "done"})
        assert finalized.status == LogStatus.SUCCESS
        assert finalized.finalized_at is not None

        with pytest.raises(LogStateError):
            await audit.finalize(root_id, LogStatus.FAILED)
        with pytest.raises(LogStateError):
            await audit.append_step(root_id, "late")

    @pytest.mark.asyncio
    async def test_finalize_rejects_pending(self, audit):
        """Final status is SUCCESS or FAILED."""
        root_id = await audit.start_task("cmd", task_id="t1")
        with pytest.raises(LogStateError):
            await audit.finalize(root_id, LogStatus.PENDING)

    @pytest.mark.asyncio
    async def test_list_tasks_newest_first(self, audit):
        """Only roots are listed, newest first."""
        for i in range(3):
            root_id = await audit.start_task(f"cmd {i}", task_id=f"t{i}")
            await audit.append_step(root_id, "step")
        assert [root.task_id for root in audit.list_tasks()] == ["t2", "t1", "t0"]
        assert len(audit.list_tasks(limit=2)) == 2

    @pytest.mark.asyncio
    async def test_concurrent_tasks_do_not_mix(self, audit):
        """Concurrent tasks write to disjoint trees."""

        async def run(name: str) -> int:
            root_id = await audit.start_task(name, task_id=name)
            for i in range(5):
                await audit.append_step(root_id, f"{name}_{i}")
                await asyncio.sleep(0)
            await audit.finalize(root_id, LogStatus.SUCCESS)
            return root_id

        await asyncio.gather(run("a"), run("b"))
        for name in ("a", "b"):
            actions = [e.action for e in audit.get_task(name).children]
            assert actions == [f"{name}_{i}" for i in range(5)]

    def test_get_unknown_task(self, audit):
        """Unknown tasks return None and no entries."""
        assert audit.get_task("missing") is None
        assert audit.entries("missing") == []


class TestHashChain:
    """Tests for tamper evidence."""

    @pytest.mark.asyncio
    async def test_intact_chain(self, audit):
        """An untouched task verifies."""
        root_id = await audit.start_task("cmd", task_id="t1")
        await audit.append_step(root_id, "step")
        await audit.finalize(root_id, LogStatus.SUCCESS)

        result = audit.verify("t1")
        assert result.valid
        assert result.records == 3

    @pytest.mark.asyncio
    async def test_tampered_file_detected(self, temp_dir: Path):
        """Editing a persisted record breaks the chain at that record."""
        log_path = temp_dir / "audit.jsonl"
        audit = HierarchicalLogger(log_path=log_path)
        root_id = await audit.start_task("refund order 45", task_id="t1")
        await audit.append_step(root_id, "tool_result", data={"amount": 10})
        await audit.finalize(root_id, LogStatus.SUCCESS)

        lines = log_path.read_text().splitlines()
        record = json.loads(lines[1])
        record["entry"]["data"]["amount"] = 1000
        lines[1] = json.dumps(record)
        log_path.write_text("\n".join(lines) + "\n")

        result = HierarchicalLogger.load(log_path).verify("t1")
        assert not result.valid
        assert result.broken_at == 1
        assert result.reason == "record hash mismatch"

    @pytest.mark.asyncio
    async def test_removed_record_detected(self, temp_dir: Path):
        """Dropping a record breaks the link of the next one."""
        log_path = temp_dir / "audit.jsonl"
        audit = HierarchicalLogger(log_path=log_path)
        root_id = await audit.start_task("cmd", task_id="t1")
        await audit.append_step(root_id, "a")
        await audit.append_step(root_id, "b")

        lines = log_path.read_text().splitlines()
        log_path.write_text("\n".join([lines[0], lines[2]]) + "\n")

        result = HierarchicalLogger.load(log_path).verify("t1")
        assert not result.valid
        assert result.broken_at == 1
        assert result.reason == "previous hash mismatch"

    def test_verify_unknown_task(self, audit):
        """Unknown tasks do not verify."""
        result = audit.verify("missing")
        assert not result.valid
        assert result.reason == "unknown task"


class TestPersistence:
    """Tests for the JSON Lines file."""

    @pytest.mark.asyncio
    async def test_records_are_chained(self, temp_dir: Path):
        """Every record links to the previous record of its task."""
        log_path = temp_dir / "audit.jsonl"
        audit = HierarchicalLogger(log_path=log_path)
        root_id = await audit.start_task("cmd", task_id="t1")
        await audit.append_step(root_id, "step")
        await audit.finalize(root_id, LogStatus.FAILED, error={"message": "boom"})

        records = [json.loads(line) for line in log_path.read_text().splitlines()]
        assert [r["kind"] for r in records] == ["entry", "entry", "finalize"]
        assert records[0]["prev_hash"] == GENESIS_HASH
        assert records[1]["prev_hash"] == records[0]["hash"]
        assert records[2]["prev_hash"] == records[1]["hash"]

    @pytest.mark.asyncio
    async def test_load_restores_tree(self, temp_dir: Path):
        """A reloaded log has the same tasks, statuses and ids."""
        log_path = temp_dir / "audit.jsonl"
        audit = HierarchicalLogger(log_path=log_path)
        root_id = await audit.start_task("cmd", task_id="t1")
        step = await audit.append_step(root_id, "step", data={"x": 1})
        await audit.finalize(root_id, LogStatus.SUCCESS, data={"output": "ok"})
        audit.close()

        loaded = HierarchicalLogger.load(log_path)
        task = loaded.get_task("t1")
        assert task.root.status == LogStatus.SUCCESS
        assert task.root.data == {"output": "ok"}
        assert [e.id for e in task.children] == [step]
        assert loaded.verify("t1").valid

        # New entries continue after the highest loaded id
        new_root = await loaded.start_task("next", task_id="t2")
        assert new_root > step

    def test_load_skips_bad_lines(self, temp_dir: Path):
        """Unreadable lines are skipped."""
        log_path = temp_dir / "audit.jsonl"
        log_path.write_text("not json\n\n")
        loaded = HierarchicalLogger.load(log_path)
        assert loaded.list_tasks() == []

    def test_load_missing_file(self, temp_dir: Path):
        """A missing file gives an empty logger."""
        assert HierarchicalLogger.load(temp_dir / "none.jsonl").list_tasks() == []

    @pytest.mark.asyncio
    async def test_buffered_writes(self, temp_dir: Path):
        """Records are buffered until the buffer fills or a task finalizes."""
        log_path = temp_dir / "audit.jsonl"
        audit = HierarchicalLogger(log_path=log_path, buffer_size=10)
        root_id = await audit.start_task("cmd", task_id="t1")
        await audit.append_step(root_id, "step")
        assert not log_path.exists() or log_path.read_text() == ""

        await audit.finalize(root_id, LogStatus.SUCCESS)
        assert len(log_path.read_text().splitlines()) == 3

    @pytest.mark.asyncio
    async def test_disabled_persistence(self, temp_dir: Path):
        """With persistence off nothing is written."""
        log_path = temp_dir / "audit.jsonl"
        audit = HierarchicalLogger(log_path=log_path, enable=False)
        root_id = await audit.start_task("cmd")
        await audit.finalize(root_id, LogStatus.SUCCESS)
        assert not log_path.exists()

    @staticmethod
    async def _run(audit: HierarchicalLogger, task_id: str) -> None:
        root_id = await audit.start_task(f"command {task_id}", task_id=task_id)
        step = await audit.append_step(root_id, f"step {task_id}")
        await audit.append_step(root_id, f"detail {task_id}", parent_id=step)
        await audit.finalize(root_id, LogStatus.SUCCESS, data={"output": task_id})
        audit.close()

    @staticmethod
    def _assert_task(loaded: HierarchicalLogger, task_id: str) -> None:
        task = loaded.get_task(task_id)
        assert task.root.action == f"command {task_id}"
        assert task.root.status == LogStatus.SUCCESS
        assert task.root.data == {"output": task_id}
        step, detail = task.children
        assert step.action == f"step {task_id}"
        assert step.parent_id == task.root.id
        assert detail.action == f"detail {task_id}"
        assert detail.parent_id == step.id
        assert loaded.verify(task_id).valid

    @pytest.mark.asyncio
    async def test_later_run_continues_ids(self, temp_dir: Path):
        """A second logger on the same file numbers after the first run."""
        log_path = temp_dir / "audit.jsonl"
        await self._run(HierarchicalLogger(log_path=log_path), "a")
        await self._run(HierarchicalLogger(log_path=log_path), "b")

        records = [json.loads(line) for line in log_path.read_text().splitlines()]
        ids = [r["entry"]["id"] for r in records if r["kind"] == "entry"]
        assert len(ids) == len(set(ids))

        loaded = HierarchicalLogger.load(log_path)
        assert {root.task_id for root in loaded.list_tasks()} == {"a", "b"}
        self._assert_task(loaded, "a")
        self._assert_task(loaded, "b")

    @pytest.mark.asyncio
    async def test_load_renumbers_colliding_ids(self, temp_dir: Path):
        """Two loggers opened before either wrote reuse ids; loading keeps tasks apart."""
        log_path = temp_dir / "audit.jsonl"
        first = HierarchicalLogger(log_path=log_path)
        second = HierarchicalLogger(log_path=log_path)
        await self._run(first, "a")
        await self._run(second, "b")

        loaded = HierarchicalLogger.load(log_path)
        assert {root.task_id for root in loaded.list_tasks()} == {"a", "b"}
        self._assert_task(loaded, "a")
        self._assert_task(loaded, "b")
        assert loaded.get_task("a").root.id != loaded.get_task("b").root.id

        # Fresh ids do not reuse any loaded id
        new_root = await loaded.start_task("next", task_id="c")
        assert new_root not in {e.id for t in ("a", "b") for e in loaded.entries(t)}
