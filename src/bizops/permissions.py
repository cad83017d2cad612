"""Role defaults and per-user overrides for module permissions.

ADMIN can do everything. For everyone else an explicit flag in
``User.permissions[module][action]`` wins; otherwise the role defaults in
``ROLE_DEFAULTS`` apply.
"""

from __future__ import annotations

from dataclasses import dataclass, field

ROLE_DEFAULTS: dict[tuple[str, str], frozenset[str]] = {
    ("ads", "view"): frozenset({"SALE_LEADER", "LEADER", "SALE", "STAFF"}),
    ("ads", "edit"): frozenset({"SALE_LEADER"}),
    ("leads", "view"): frozenset({"SALE_LEADER"}),
    ("leads", "edit"): frozenset({"SALE_LEADER"}),
    ("leads", "assign"): frozenset({"SALE_LEADER"}),
    ("leads", "delete"): frozenset(),
    ("crm", "view"): frozenset({"SALE_LEADER", "LEADER", "SALE", "STAFF"}),
    ("crm", "edit"): frozenset({"SALE_LEADER", "SALE"}),
    ("crm", "assign"): frozenset({"SALE_LEADER"}),
    ("crm", "delete"): frozenset({"SALE_LEADER"}),
    ("tasks", "view_all"): frozenset({"LEADER"}),
    ("tasks", "manage"): frozenset({"LEADER"}),
    ("training", "view"): frozenset({"SALE_LEADER", "LEADER", "SALE", "STAFF"}),
    ("training", "edit"): frozenset({"SALE_LEADER"}),
    ("expenses", "review"): frozenset(),
    ("payroll", "manage"): frozenset(),
    ("settings", "manage"): frozenset(),
    ("dashboard", "view"): frozenset({"LEADER", "SALE_LEADER"}),
}

# Actions a per-user flag may never grant.
ADMIN_ONLY: frozenset[tuple[str, str]] = frozenset(
    {("leads", "delete"), ("expenses", "review"), ("payroll", "manage"), ("settings", "manage")}
)


@dataclass(frozen=True)
class Principal:
    """The authenticated user as seen by request handlers and services."""

    id: str
    email: str
    name: str
    role: str
    team: str
    permissions: dict = field(default_factory=dict)

    @property
    def is_admin(self) -> bool:
        return self.role == "ADMIN"

    def can(self, module: str, action: str) -> bool:
        if self.is_admin:
            return True
        if (module, action) in ADMIN_ONLY:
            return False
        explicit = (self.permissions or {}).get(module, {}).get(action)
        if explicit is not None:
            return bool(explicit)
        return self.role in ROLE_DEFAULTS.get((module, action), frozenset())

    def require(self, module: str, action: str) -> None:
        """Raise PermissionError unless the principal may perform the action."""
        if not self.can(module, action):
            raise PermissionError(f"Not allowed to {action} {module}")

    @classmethod
    def from_user(cls, user) -> Principal:
        return cls(
            id=str(user.id),
            email=user.email,
            name=user.name,
            role=user.role,
            team=user.team,
            permissions=dict(user.permissions or {}),
        )
