from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Coroutine, Dict, Iterator, Tuple

from .context import Candidate, Context
from .errors import UsageError
from .fork import fork
from .resolver import resolve
from .sentinel import CONTINUE, Continue, Done, Step, classify

if TYPE_CHECKING:
    from .unit import Unit


Args = Tuple[Any, ...]
Kwargs = Dict[str, Any]

_EXHAUSTED = object()


def _discard(outcome: Any) -> None:
    # An un-awaited coroutine must never run (and must not warn on collection).
    if inspect.iscoroutine(outcome):
        outcome.close()


def _close(iterator: Any) -> None:
    close = getattr(iterator, "close", None)
    if callable(close):
        close()


class Strategy(ABC):
    """
    Drives "try override 1, then 2, ..., then default" for one invocation.

    Shared contract:
    - the child context is forked from the caller with the unit's dependencies
    - the override chain is resolved against the caller's context, not the child's
    - candidates run strictly in order, each bound to the child, until one is Done
    - when every override continues, the default's outcome is final
    """

    kind = "abstract"

    def prepare(self, unit: "Unit", caller: Context) -> Tuple[Context, Tuple[Candidate, ...]]:
        child = fork(caller, unit.dependencies)
        chain = resolve(caller, unit.name)
        self._emit(
            caller,
            "invocation_started",
            unit,
            message="Invocation started",
            data={"strategy": self.kind, "overrides": len(chain)},
        )
        return child, chain + (unit.default,)

    @abstractmethod
    def run(self, unit: "Unit", caller: Context, args: Args, kwargs: Kwargs) -> Any:
        raise NotImplementedError

    @staticmethod
    def _emit(ctx: Context, event_type: str, unit: "Unit", **fields: Any) -> None:
        if ctx.trace is not None:
            ctx.trace.emit(event_type, unit=unit.name, **fields)

    def _started(self, ctx: Context, unit: "Unit", index: int, total: int) -> None:
        role = "default" if index == total - 1 else "override"
        self._emit(ctx, "candidate_started", unit, step=index, data={"role": role})

    def _continued(self, ctx: Context, unit: "Unit", index: int) -> None:
        self._emit(ctx, "candidate_continued", unit, step=index)

    def _finished(self, ctx: Context, unit: "Unit", index: int) -> None:
        self._emit(ctx, "invocation_finished", unit, step=index, message="Invocation finished")

    def _failed(self, ctx: Context, unit: "Unit", index: int, e: BaseException) -> None:
        self._emit(ctx, "error", unit, step=index, message="Candidate failed", data={"error": repr(e)})


class SyncStrategy(Strategy):
    """
    No suspension: an awaitable outcome is a usage error, never waited on.
    """

    kind = "sync"

    def run_candidate(self, unit: "Unit", index: int, candidate: Candidate, child: Context, args: Args, kwargs: Kwargs) -> Step:
        outcome = candidate(child, *args, **kwargs)
        if inspect.isawaitable(outcome):
            _discard(outcome)
            raise UsageError(
                code="strategy.sync_awaitable",
                message=f"{unit.name}: candidate {index} returned an awaitable; use a deferred unit",
                data={"unit": unit.name, "step": index},
            )
        return classify(outcome)

    def run(self, unit: "Unit", caller: Context, args: Args, kwargs: Kwargs) -> Any:
        child, candidates = self.prepare(unit, caller)
        for index, candidate in enumerate(candidates):
            self._started(caller, unit, index, len(candidates))
            try:
                step = self.run_candidate(unit, index, candidate, child, args, kwargs)
            except Exception as e:  # noqa: BLE001
                self._failed(caller, unit, index, e)
                raise
            if isinstance(step, Done):
                self._finished(caller, unit, index)
                return step.value
            self._continued(caller, unit, index)
        self._finished(caller, unit, len(candidates) - 1)
        return None


class DeferredStrategy(Strategy):
    """
    Awaitable outcomes are settled before they are compared against CONTINUE.

    Candidate N+1 is never entered while candidate N is pending. A raised exception
    (or a rejected awaitable) aborts the chain and propagates unchanged.
    """

    kind = "deferred"

    async def run_candidate(self, unit: "Unit", index: int, candidate: Candidate, child: Context, args: Args, kwargs: Kwargs) -> Step:
        outcome = candidate(child, *args, **kwargs)
        while inspect.isawaitable(outcome):
            outcome = await outcome
        return classify(outcome)

    def run(self, unit: "Unit", caller: Context, args: Args, kwargs: Kwargs) -> Coroutine[Any, Any, Any]:
        return self._drive(unit, caller, args, kwargs)

    async def _drive(self, unit: "Unit", caller: Context, args: Args, kwargs: Kwargs) -> Any:
        child, candidates = self.prepare(unit, caller)
        for index, candidate in enumerate(candidates):
            self._started(caller, unit, index, len(candidates))
            try:
                step = await self.run_candidate(unit, index, candidate, child, args, kwargs)
            except Exception as e:  # noqa: BLE001
                self._failed(caller, unit, index, e)
                raise
            if isinstance(step, Done):
                self._finished(caller, unit, index)
                return step.value
            self._continued(caller, unit, index)
        self._finished(caller, unit, len(candidates) - 1)
        return None


class StreamStrategy(Strategy):
    """
    Candidates return CONTINUE or an iterable; the result is a lazy generator.

    Nothing runs until the first item is demanded. A sequence whose first item is
    CONTINUE defers to the next candidate, which lets generator candidates decide
    lazily. CONTINUE as a later item is a usage error. Closing the result closes
    the selected upstream iterator.
    """

    kind = "stream"

    def run_candidate(self, unit: "Unit", index: int, candidate: Candidate, child: Context, args: Args, kwargs: Kwargs) -> Step:
        outcome = candidate(child, *args, **kwargs)
        if inspect.isawaitable(outcome):
            _discard(outcome)
            raise UsageError(
                code="strategy.stream_awaitable",
                message=f"{unit.name}: candidate {index} returned an awaitable; stream candidates must return iterables",
                data={"unit": unit.name, "step": index},
            )
        step = classify(outcome)
        if isinstance(step, Continue) or step.value is None:
            return step
        try:
            iterator = iter(step.value)
        except TypeError as e:
            raise UsageError(
                code="strategy.stream_not_iterable",
                message=f"{unit.name}: candidate {index} returned a non-iterable {type(step.value).__name__}",
                data={"unit": unit.name, "step": index},
            ) from e
        first = next(iterator, _EXHAUSTED)
        if first is CONTINUE:
            _close(iterator)
            return Continue()
        return Done((first, iterator))

    def run(self, unit: "Unit", caller: Context, args: Args, kwargs: Kwargs) -> Iterator[Any]:
        return self._drive(unit, caller, args, kwargs)

    def _drive(self, unit: "Unit", caller: Context, args: Args, kwargs: Kwargs) -> Iterator[Any]:
        child, candidates = self.prepare(unit, caller)
        for index, candidate in enumerate(candidates):
            self._started(caller, unit, index, len(candidates))
            try:
                step = self.run_candidate(unit, index, candidate, child, args, kwargs)
            except Exception as e:  # noqa: BLE001
                self._failed(caller, unit, index, e)
                raise
            if isinstance(step, Continue):
                self._continued(caller, unit, index)
                continue

            self._finished(caller, unit, index)
            if step.value is None:
                return
            first, iterator = step.value
            try:
                if first is not _EXHAUSTED:
                    yield first
                    for item in iterator:
                        if item is CONTINUE:
                            raise UsageError(
                                code="strategy.stream_continue",
                                message=f"{unit.name}: CONTINUE may only be the first item of a stream",
                                data={"unit": unit.name, "step": index},
                            )
                        yield item
            except Exception as e:  # noqa: BLE001
                self._failed(caller, unit, index, e)
                raise
            finally:
                _close(iterator)
            return
        self._finished(caller, unit, len(candidates) - 1)
