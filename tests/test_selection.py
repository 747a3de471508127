"""Tests for selection state."""

from activity_admin.services.selection import SelectionSet
from tests.conftest import make_participant


def test_select_all_then_deselect_all_round_trip() -> None:
    selection = SelectionSet()

    selection.select_all([1, 2, 3])
    assert selection.ids == frozenset({1, 2, 3})
    assert selection.is_all_selected([1, 2, 3])

    selection.deselect_all()
    assert selection.ids == frozenset()
    assert selection.count == 0


def test_select_all_replaces_previous_selection() -> None:
    selection = SelectionSet([9])

    selection.select_all([1, 2])

    assert selection.ids == frozenset({1, 2})


def test_is_all_selected_false_when_nothing_visible() -> None:
    selection = SelectionSet([1, 2])

    assert not selection.is_all_selected([])
    assert not SelectionSet().is_all_selected([])


def test_is_all_selected_requires_every_visible_id() -> None:
    selection = SelectionSet([1, 2])

    assert not selection.is_all_selected([1, 2, 3])
    assert selection.is_all_selected([2, 1])


def test_toggle_flips_only_the_given_id() -> None:
    selection = SelectionSet([1, 2])

    selection.toggle(3)
    assert selection.ids == frozenset({1, 2, 3})

    selection.toggle(1)
    assert selection.ids == frozenset({2, 3})


def test_mutations_rebind_instead_of_editing() -> None:
    selection = SelectionSet([1])
    before = selection.ids

    selection.toggle(2)

    assert before == frozenset({1})
    assert selection.ids is not before


def test_selected_data_keeps_input_order_and_only_known_ids() -> None:
    participants = [make_participant(3), make_participant(1), make_participant(2)]
    selection = SelectionSet([1, 3, 42])

    selected = selection.selected_data(participants)

    assert [p.user_id for p in selected] == [3, 1]


def test_restricted_to_is_contained_in_visible_ids() -> None:
    selection = SelectionSet([1, 2, 5])

    restricted = selection.restricted_to([2, 3, 5])

    assert restricted == frozenset({2, 5})
    assert restricted <= frozenset({2, 3, 5})
