"""Caller capabilities passed explicitly into the console core."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Capabilities:
    """What the current console user may do."""

    user_type: str | None
    can_view_activities: bool
    can_manage_participants: bool
    can_export_data: bool

    @classmethod
    def for_user_type(cls, user_type: str | None) -> "Capabilities":
        """Derive capabilities from a console user type."""
        is_staff = user_type == "staff"
        is_teacher = user_type == "teacher"
        return cls(
            user_type=user_type,
            can_view_activities=is_staff or is_teacher,
            can_manage_participants=is_staff,
            can_export_data=is_staff or is_teacher,
        )
