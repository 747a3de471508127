"""Selection state for participant views."""

from collections.abc import Iterable

from activity_admin.domain.participants import Participant


class SelectionSet:
    """Set of selected participant ids.

    Every mutation binds a fresh ``frozenset`` instead of editing the current
    one, so a reader always observes either the old or the new selection.
    """

    def __init__(self, ids: Iterable[int] = ()) -> None:
        self._ids: frozenset[int] = frozenset(ids)

    @property
    def ids(self) -> frozenset[int]:
        return self._ids

    @property
    def count(self) -> int:
        return len(self._ids)

    def select_all(self, visible_ids: Iterable[int]) -> None:
        """Replace the selection with exactly the visible ids."""
        self._ids = frozenset(visible_ids)

    def deselect_all(self) -> None:
        self._ids = frozenset()

    def toggle(self, user_id: int) -> None:
        """Flip membership of a single id."""
        current = self._ids
        if user_id in current:
            self._ids = current - {user_id}
        else:
            self._ids = current | {user_id}

    def is_selected(self, user_id: int) -> bool:
        return user_id in self._ids

    def is_all_selected(self, visible_ids: Iterable[int]) -> bool:
        """Return True when every visible id is selected; False with none visible."""
        visible = list(visible_ids)
        if not visible:
            return False
        current = self._ids
        return all(user_id in current for user_id in visible)

    def selected_data(self, participants: Iterable[Participant]) -> list[Participant]:
        """Return the selected participants, keeping the order given."""
        current = self._ids
        return [p for p in participants if p.user_id in current]

    def restricted_to(self, visible_ids: Iterable[int]) -> frozenset[int]:
        """Return the selected ids that are present in the visible set."""
        return self._ids & frozenset(visible_ids)
