"""Action executor: dispatch a validated Intent to the remote backend or the local report.

Per-command state machine:

    Received -> Built -> Dispatched -> Succeeded
                                    -> FallenBack -> Succeeded | Failed
                                    -> Failed

Remote-capable actions (theme update, DAX queries) try the backend first; a `BackendError` moves the
command to `FallenBack` and the equivalent local patch is applied. Local-only actions (cards, text
size) patch the document directly. The executor never raises for backend, builder or storage
failures; they become `status="error"` envelopes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Protocol

from src.actions.envelope import ResultEnvelope, error_envelope, ok_envelope
from src.dax.builder import BuiltAction, DAXBuilderError, build
from src.intent.context import DEFAULT_CONTEXT, CommandContext
from src.intent.schema import Action, Intent
from src.powerbi.client import BackendError
from src.report.storage import StorageError
from src.report.store import DocumentStore

logger = logging.getLogger(__name__)


class CommandState(StrEnum):
    """Lifecycle states of a single command."""

    received = "Received"
    built = "Built"
    dispatched = "Dispatched"
    succeeded = "Succeeded"
    fallen_back = "FallenBack"
    failed = "Failed"


class AnalyticBackend(Protocol):
    async def run_query(self, dax: str) -> list[dict[str, Any]]: ...

    async def update_theme(self, theme: dict[str, Any]) -> None: ...


@dataclass
class Execution:
    """Outcome of one command: visited states, the envelope and whether the report changed."""

    intent: Intent
    envelope: ResultEnvelope
    states: list[CommandState] = field(default_factory=list)
    mutated: bool = False

    @property
    def state(self) -> CommandState:
        return self.states[-1]


class ActionExecutor:
    """Executes intents against an optional remote backend and the shared document store."""

    def __init__(
            self,
            store: DocumentStore,
            backend: AnalyticBackend | None = None,
            *,
            context: CommandContext = DEFAULT_CONTEXT,
    ) -> None:
        self._store = store
        self._backend = backend
        self._context = context

    async def execute(self, intent: Intent, context: CommandContext | None = None) -> Execution:
        """Run one command through the state machine; `context` overrides the executor vocabulary."""

        states = [CommandState.received]
        echo = intent.to_params()

        def finish(envelope: ResultEnvelope, state: CommandState, *, mutated: bool = False) -> Execution:
            states.append(state)
            envelope.state = state.value
            return Execution(intent=intent, envelope=envelope, states=states, mutated=mutated)

        if intent.action == Action.unknown:
            return finish(
                error_envelope(intent.action, "Command not recognized", **echo),
                CommandState.failed,
            )

        try:
            built = build(intent, context or self._context)
        except DAXBuilderError as exc:
            logger.info("build failed action=%s reason=%s", intent.action, exc)
            return finish(error_envelope(intent.action, str(exc), **echo), CommandState.failed)

        states.append(CommandState.built)
        if built.query is not None:
            echo["dax"] = built.query
        states.append(CommandState.dispatched)

        remote_error: str | None = None
        if built.has_remote:
            try:
                result = await self._dispatch_remote(built)
            except BackendError as exc:
                remote_error = str(exc)
                logger.warning(
                    "remote call failed action=%s status=%s reason=%s; applying local fallback",
                    intent.action,
                    exc.status,
                    exc,
                )
                states.append(CommandState.fallen_back)
            else:
                return finish(
                    ok_envelope(intent.action, result, path="remote", **echo),
                    CommandState.succeeded,
                )

        try:
            summary = await self._store.apply(built.patch)
        except StorageError as exc:
            logger.error("local mutation failed action=%s reason=%s", intent.action, exc)
            return finish(
                error_envelope(intent.action, "Report could not be saved", remoteError=remote_error, **echo),
                CommandState.failed,
            )

        envelope = ok_envelope(intent.action, summary, path="local", **echo)
        if remote_error is not None:
            envelope.fallback = True
            envelope.remote_error = remote_error
        return finish(envelope, CommandState.succeeded, mutated=True)

    async def _dispatch_remote(self, built: BuiltAction) -> Any:
        if self._backend is None:
            raise BackendError("analytic backend is not configured")

        if built.theme is not None:
            await self._backend.update_theme(built.theme)
            return {"theme": built.theme.get("name")}

        if built.query is not None:
            return await self._backend.run_query(built.query)
        raise BackendError(f"{built.intent.action} has no remote payload")
