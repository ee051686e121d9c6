"""Tests for the action executor state machine and its local fallback."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from src.actions.executor import ActionExecutor, CommandState
from src.dax.builder import BuiltAction
from src.intent.schema import Action, Intent, validate_intent
from src.powerbi.client import BackendError
from src.report.document import ReportDocument
from src.report.patches import SetTextSize
from src.report.storage import DocumentStorage, StorageError
from src.report.store import DocumentStore


class _RejectingBackend:
    def __init__(self) -> None:
        self.calls: list[str] = []

    async def run_query(self, dax: str) -> list[dict[str, Any]]:
        self.calls.append("run_query")
        raise BackendError("HTTP 503", status=503, body="unavailable")

    async def update_theme(self, theme: dict[str, Any]) -> None:
        self.calls.append("update_theme")
        raise BackendError("HTTP 401", status=401)


class _RecordingBackend:
    def __init__(self, rows: list[dict[str, Any]]) -> None:
        self.rows = rows
        self.queries: list[str] = []
        self.themes: list[dict[str, Any]] = []

    async def run_query(self, dax: str) -> list[dict[str, Any]]:
        self.queries.append(dax)
        return self.rows

    async def update_theme(self, theme: dict[str, Any]) -> None:
        self.themes.append(theme)


def _store(tmp_path: Path) -> DocumentStore:
    return DocumentStore(DocumentStorage(tmp_path / "report.json"))


@pytest.mark.asyncio
async def test_rejected_theme_falls_back_to_local_document(tmp_path: Path) -> None:
    store = _store(tmp_path)
    backend = _RejectingBackend()
    executor = ActionExecutor(store, backend)

    execution = await executor.execute(validate_intent({"action": "applyTheme", "colorHex": "#654321"}))

    assert execution.states == [
        CommandState.received,
        CommandState.built,
        CommandState.dispatched,
        CommandState.fallen_back,
        CommandState.succeeded,
    ]
    assert execution.mutated
    assert backend.calls == ["update_theme"]

    envelope = execution.envelope.to_dict()
    assert envelope["status"] == "ok"
    assert envelope["path"] == "local"
    assert envelope["fallback"] is True
    assert envelope["remoteError"] == "HTTP 401"
    assert envelope["colorHex"] == "#654321"

    snapshot = await store.snapshot()
    assert snapshot.theme is not None
    assert snapshot.theme["name"] == "Custom Theme #654321"


@pytest.mark.asyncio
async def test_rejected_query_falls_back_to_local_page(tmp_path: Path) -> None:
    store = _store(tmp_path)
    executor = ActionExecutor(store, _RejectingBackend())

    execution = await executor.execute(validate_intent({"action": "topCaffeine", "n": 3}))

    assert execution.state == CommandState.succeeded
    assert CommandState.fallen_back in execution.states
    envelope = execution.envelope.to_dict()
    assert envelope["dax"].startswith("EVALUATE TOPN(3, ")
    assert envelope["result"] == {"page": "top-3-caffeine-mg"}

    snapshot = await store.snapshot()
    assert [page["name"] for page in snapshot.sections] == ["top-3-caffeine-mg"]


@pytest.mark.asyncio
async def test_missing_backend_is_treated_as_a_backend_failure(tmp_path: Path) -> None:
    store = _store(tmp_path)
    executor = ActionExecutor(store, None)

    execution = await executor.execute(validate_intent({"action": "filter", "value": "Latte"}))

    assert execution.state == CommandState.succeeded
    assert execution.envelope.fallback is True
    assert len((await store.snapshot()).cards) == 1


@pytest.mark.asyncio
async def test_remote_success_returns_rows_without_local_mutation(tmp_path: Path) -> None:
    store = _store(tmp_path)
    rows = [{"Coffee Detail[Drink]": "Flat White", "Coffee Detail[Caffeine (mg)]": 130}]
    backend = _RecordingBackend(rows)
    executor = ActionExecutor(store, backend)

    execution = await executor.execute(validate_intent({"action": "maxValue", "column": "caffeine"}))

    assert execution.states[-1] == CommandState.succeeded
    assert CommandState.fallen_back not in execution.states
    assert not execution.mutated
    assert execution.envelope.path == "remote"
    assert execution.envelope.result == rows
    assert backend.queries == [execution.envelope.to_dict()["dax"]]
    assert (await store.snapshot()) == ReportDocument()


@pytest.mark.asyncio
async def test_local_only_actions_skip_the_backend(tmp_path: Path) -> None:
    store = _store(tmp_path)
    backend = _RecordingBackend([])
    executor = ActionExecutor(store, backend)

    execution = await executor.execute(validate_intent({"action": "textSize", "change": "increase"}))

    assert execution.state == CommandState.succeeded
    assert execution.envelope.path == "local"
    assert execution.envelope.fallback is None
    assert execution.envelope.result == {"fontSize": 12}
    assert backend.queries == []
    assert backend.themes == []


@pytest.mark.asyncio
async def test_unknown_intent_fails(tmp_path: Path) -> None:
    executor = ActionExecutor(_store(tmp_path))

    execution = await executor.execute(Intent(action=Action.unknown, raw="sing a song"))

    assert execution.states == [CommandState.received, CommandState.failed]
    envelope = execution.envelope.to_dict()
    assert envelope["status"] == "error"
    assert envelope["message"] == "Command not recognized"
    assert envelope["raw"] == "sing a song"


@pytest.mark.asyncio
async def test_storage_failure_fails_the_command(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    storage = DocumentStorage(tmp_path / "report.json")
    executor = ActionExecutor(DocumentStore(storage), _RejectingBackend())

    def _broken_save(_document: ReportDocument) -> None:
        raise StorageError("read-only file system")

    monkeypatch.setattr(storage, "save", _broken_save)

    execution = await executor.execute(validate_intent({"action": "compareCaloriesSugar"}))

    assert execution.state == CommandState.failed
    assert CommandState.fallen_back in execution.states
    assert not execution.mutated
    envelope = execution.envelope.to_dict()
    assert envelope["status"] == "error"
    assert envelope["remoteError"] == "HTTP 503"


@pytest.mark.asyncio
async def test_text_size_over_malformed_stored_font_succeeds(tmp_path: Path) -> None:
    path = tmp_path / "report.json"
    path.write_text(json.dumps({"theme": {"textClasses": {"label": {"fontSize": "12pt"}}}}), encoding="utf-8")
    executor = ActionExecutor(DocumentStore(DocumentStorage(path)))

    execution = await executor.execute(validate_intent({"action": "textSize", "change": "increase"}))

    assert execution.state == CommandState.succeeded
    assert execution.envelope.result == {"fontSize": 12}


@pytest.mark.asyncio
async def test_action_without_remote_payload_is_a_backend_error(tmp_path: Path) -> None:
    executor = ActionExecutor(_store(tmp_path), _RecordingBackend([]))
    intent = validate_intent({"action": "textSize", "change": "increase"})

    with pytest.raises(BackendError):
        await executor._dispatch_remote(BuiltAction(intent=intent, patch=SetTextSize(change="increase")))
