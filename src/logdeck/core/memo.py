"""Identity-keyed memoization for derived views.

Log collections are large, so derived values are cached against the
*identity* of their inputs, never deep equality. Callers signal a change by
passing a new object (a new list, a new frozenset), which is also how the
store publishes every mutation.

// [LAW:single-enforcer] IdentityMemo is the only cache in front of the
// grouping and projection algorithms; it holds exactly one entry.
"""

from __future__ import annotations

from typing import Callable, Generic, TypeVar

T = TypeVar("T")

_EMPTY = object()


class IdentityMemo(Generic[T]):
    """Cache the last result of fn, keyed on the identity of each argument.

    A call with any argument that `is not` the previous one recomputes and
    replaces the cached value atomically.
    """

    def __init__(self, fn: Callable[..., T]):
        self._fn = fn
        self._args: tuple = ()
        self._value: object = _EMPTY
        self.compute_count = 0

    def __call__(self, *args) -> T:
        if self._value is not _EMPTY and self._same_args(args):
            return self._value  # type: ignore[return-value]
        value = self._fn(*args)
        self._args = args
        self._value = value
        self.compute_count += 1
        return value

    def _same_args(self, args: tuple) -> bool:
        if len(args) != len(self._args):
            return False
        return all(new is old for new, old in zip(args, self._args))

    def invalidate(self) -> None:
        self._args = ()
        self._value = _EMPTY
