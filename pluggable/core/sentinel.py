from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union


class _ContinueMarker:
    """
    Identity-unique marker returned by a candidate to defer to the next one.

    Copying or pickling yields the same object so identity checks keep working.
    """

    __slots__ = ()
    _instance = None  # type: _ContinueMarker | None

    def __new__(cls) -> "_ContinueMarker":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "CONTINUE"

    def __reduce__(self) -> str:
        return "CONTINUE"

    def __copy__(self) -> "_ContinueMarker":
        return self

    def __deepcopy__(self, memo: dict) -> "_ContinueMarker":
        return self


CONTINUE = _ContinueMarker()


@dataclass(frozen=True)
class Continue:
    pass


@dataclass(frozen=True)
class Done:
    value: Any


Step = Union[Continue, Done]


def classify(outcome: Any) -> Step:
    """
    Map a settled candidate outcome onto the two-variant step type.
    """
    if outcome is CONTINUE or isinstance(outcome, Continue):
        return Continue()
    if isinstance(outcome, Done):
        if outcome.value is CONTINUE:
            return Continue()
        return outcome
    return Done(outcome)
