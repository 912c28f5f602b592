"""Tests for the filtered view and its selection cursor."""

from __future__ import annotations

from tori.filtered_list import FilteredList
from tori.song import Song, song_matches


def _evens(value: int) -> bool:
    return value % 2 == 0


def test_filter_preserves_order() -> None:
    items = [5, 2, 8, 3, 4]
    view: FilteredList[int] = FilteredList()
    view.filter(items, _evens)
    assert view.items == [2, 8, 4]
    assert list(view) == [2, 8, 4]
    assert len(view) == 3
    assert view[1] == 8
    assert items == [5, 2, 8, 3, 4]


def test_first_filter_selects_first_item() -> None:
    view: FilteredList[int] = FilteredList()
    view.filter([1, 2, 3], lambda _value: True)
    assert view.selected == 0
    assert view.selected_item == 1


def test_empty_view_has_no_selection() -> None:
    view: FilteredList[int] = FilteredList()
    view.filter([1, 3], _evens)
    assert view.selected is None
    assert view.selected_item is None
    view.select_next()
    view.select_prev()
    assert view.selected is None
    assert view.source_index() is None


def test_selection_follows_value_across_filters() -> None:
    items = [1, 2, 3, 4, 5, 6]
    view: FilteredList[int] = FilteredList()
    view.filter(items, lambda _value: True)
    view.select(3)
    assert view.selected_item == 4
    view.filter(items, _evens)
    assert view.items == [2, 4, 6]
    assert view.selected == 1
    assert view.selected_item == 4


def test_selection_clamps_when_value_disappears() -> None:
    items = [1, 2, 3, 4, 5, 6]
    view: FilteredList[int] = FilteredList()
    view.filter(items, lambda _value: True)
    view.select(4)
    view.filter(items, _evens)
    assert view.selected == 2
    assert view.selected_item == 6


def test_next_prev_clamp_without_wrapping() -> None:
    view: FilteredList[str] = FilteredList()
    view.filter(["a", "b", "c"], lambda _value: True)
    view.select_prev()
    assert view.selected == 0
    view.select_next()
    view.select_next()
    view.select_next()
    assert view.selected == 2
    view.select(99)
    assert view.selected == 2
    view.select(None)
    assert view.selected is None
    view.select_next()
    assert view.selected == 0


def test_source_index_maps_to_backing_position() -> None:
    songs = [
        Song(title="Blue", path="/a.mp3"),
        Song(title="Green", path="/b.mp3"),
        Song(title="Blue in Green", path="/c.mp3"),
    ]
    view: FilteredList[Song] = FilteredList()
    view.filter(songs, lambda song: song_matches(song, "green"))
    assert view.source_index() == 1
    view.select_next()
    assert view.source_index() == 2
    assert view.source_index(0) == 1
    assert view.source_index(5) is None


def test_refresh_after_backing_changes() -> None:
    items = ["alpha", "beta", "gamma"]
    view: FilteredList[str] = FilteredList()
    view.filter(items, lambda value: "a" in value)
    view.select(1)
    assert view.selected_item == "beta"
    items.insert(0, "delta")
    view.refresh()
    assert view.items == ["delta", "alpha", "beta", "gamma"]
    assert view.selected_item == "beta"
    assert view.selected == 2
