"""Order-preserving filtered view with a selection cursor."""

from __future__ import annotations

from typing import Callable, Generic, Iterator, Optional, Sequence, TypeVar

T = TypeVar("T")


class FilteredList(Generic[T]):
    """Filtered view over a backing sequence the caller owns.

    Only indices into the backing sequence are kept; values are read from it
    on every access, and it is never modified here. After changing the backing
    sequence call :meth:`refresh` (same sequence) or :meth:`filter`.
    """

    def __init__(self) -> None:
        self._source: Sequence[T] = ()
        self._predicate: Callable[[T], bool] = lambda _item: True
        self._indices: list[int] = []
        self._selected: Optional[int] = None
        # Value under the cursor when it was last moved; survives in-place
        # changes of the backing sequence.
        self._selected_value: Optional[T] = None

    def filter(self, items: Sequence[T], predicate: Callable[[T], bool]) -> None:
        """Recompute the view, keeping the selected value when it survives."""
        previous = self._selected_value if self._selected is not None else None
        old_position = self._selected
        self._source = items
        self._predicate = predicate
        self._indices = [idx for idx, item in enumerate(items) if predicate(item)]
        self._set_selected(self._reselect(previous, old_position))

    def refresh(self) -> None:
        self.filter(self._source, self._predicate)

    @property
    def items(self) -> list[T]:
        return [self._source[idx] for idx in self._indices]

    def __len__(self) -> int:
        return len(self._indices)

    def __iter__(self) -> Iterator[T]:
        return iter(self.items)

    def __getitem__(self, index: int) -> T:
        return self._source[self._indices[index]]

    @property
    def selected(self) -> Optional[int]:
        return self._selected

    @property
    def selected_item(self) -> Optional[T]:
        if self._selected is None:
            return None
        try:
            return self[self._selected]
        except IndexError:
            return None

    def source_index(self, view_index: Optional[int] = None) -> Optional[int]:
        """Map a view position (default: the selection) to the backing index."""
        position = self._selected if view_index is None else view_index
        if position is None or not 0 <= position < len(self._indices):
            return None
        return self._indices[position]

    def select(self, index: Optional[int]) -> None:
        if index is None or not self._indices:
            self._set_selected(None)
            return
        self._set_selected(max(0, min(index, len(self._indices) - 1)))

    def select_next(self) -> None:
        if not self._indices:
            return
        if self._selected is None:
            self._set_selected(0)
            return
        self._set_selected(min(self._selected + 1, len(self._indices) - 1))

    def select_prev(self) -> None:
        if not self._indices:
            return
        if self._selected is None:
            self._set_selected(0)
            return
        self._set_selected(max(self._selected - 1, 0))

    def _set_selected(self, position: Optional[int]) -> None:
        self._selected = position
        self._selected_value = None if position is None else self[position]

    def _reselect(
        self, previous: Optional[T], old_position: Optional[int]
    ) -> Optional[int]:
        if not self._indices:
            return None
        if previous is not None:
            for position, idx in enumerate(self._indices):
                if self._source[idx] == previous:
                    return position
        if old_position is None:
            return 0
        return min(old_position, len(self._indices) - 1)
