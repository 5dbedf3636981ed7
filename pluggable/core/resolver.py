from __future__ import annotations

from typing import Tuple

from .context import Candidate, Context, extensions_of


def resolve(context: Context, unit_name: str) -> Tuple[Candidate, ...]:
    """
    Override candidates registered for `unit_name`, in declaration order.
    """
    return extensions_of(context).override.get(unit_name, ())
