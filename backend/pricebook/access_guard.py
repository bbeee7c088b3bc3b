# Overview: Navigation guards for user-only and admin-only views.

"""
Access guards decide what happens when someone navigates to a protected view.

Input is the identity resolution state:
- PENDING            identity not resolved yet -> no decision (render nothing)
- None               anonymous                 -> redirect to /login
- SessionContext     authenticated             -> allow, or redirect to
                                                  /dashboard when an admin
                                                  view is requested by a user
"""

from __future__ import annotations

from dataclasses import dataclass

LOGIN_PATH = "/login"
USER_DASHBOARD_PATH = "/dashboard"

PENDING = object()

ALLOW = "allow"
REDIRECT = "redirect"
WAIT = "pending"


@dataclass(frozen=True)
class GuardDecision:
    outcome: str
    redirect_to: str | None = None

    @classmethod
    def allow(cls) -> "GuardDecision":
        return cls(ALLOW)

    @classmethod
    def pending(cls) -> "GuardDecision":
        return cls(WAIT)

    @classmethod
    def redirect(cls, path: str) -> "GuardDecision":
        return cls(REDIRECT, path)

    @property
    def allowed(self) -> bool:
        return self.outcome == ALLOW


class UserGuard:
    """Any authenticated identity may pass."""

    requires_admin = False

    def decide(self, state) -> GuardDecision:
        if state is PENDING:
            return GuardDecision.pending()
        if state is None:
            return GuardDecision.redirect(LOGIN_PATH)
        if self.requires_admin and not state.is_admin:
            return GuardDecision.redirect(USER_DASHBOARD_PATH)
        return GuardDecision.allow()


class AdminGuard(UserGuard):
    """Only identities whose role is admin may pass."""

    requires_admin = True


user_guard = UserGuard()
admin_guard = AdminGuard()
