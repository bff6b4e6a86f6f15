"""Per-client session state shared by the role gate and the controller."""
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

from portal.models.portal import Identity, Profile, Role


@dataclass
class SessionContext:
    selected_role: Optional[Role] = None
    profile: Optional[Profile] = None
    current_user: Optional[str] = None
    is_authenticated: bool = False
    is_admin: bool = False
    selected_course: Optional[str] = None
    show_completion: bool = False
    # identity of a resumed gateway session still awaiting role verification
    pending_identity: Optional[Identity] = None

    def grant(self, profile: Profile) -> None:
        """Mark the session authenticated as ``profile``."""
        self.profile = profile
        self.current_user = profile.id
        self.is_admin = profile.role == Role.ADMIN
        self.is_authenticated = True
        self.pending_identity = None

    def reset(self) -> None:
        """Clear everything derived from the sign-in, all at once."""
        self.selected_role = None
        self.profile = None
        self.current_user = None
        self.is_authenticated = False
        self.is_admin = False
        self.selected_course = None
        self.show_completion = False
        self.pending_identity = None

    def to_dict(self) -> dict:
        return {
            "selectedRole": self.selected_role.value if self.selected_role else None,
            "authenticated": self.is_authenticated,
            "isAdmin": self.is_admin,
            "currentUser": self.current_user,
            "email": self.profile.email if self.profile else None,
            "selectedCourse": self.selected_course,
            "showCompletion": self.show_completion,
        }
