"""
Role-based permission system (RBAC).

Defines:
1. User roles with different privilege levels
2. Specific permissions that can be checked
3. Mapping of which roles have which permissions
4. Helper functions to check permissions and role hierarchy

Role Hierarchy (lowest to highest):
    Visitor → Reader → Author → Admin

Permission Design:
- Each role has an explicit set of permissions
- Roles DO NOT automatically inherit lower role permissions (must be explicit)
- Admin has a FULL_ACCESS permission that grants everything

Security Considerations:
- Only admins may grant the admin role
- Inactive accounts keep read access but lose every write permission
"""

from enum import Enum

# ============================================================================
# ROLE DEFINITIONS
# ============================================================================


class Role(Enum):
    """
    User roles in the system, ordered by privilege level.

    Roles are stored as lowercase strings in the database but represented as
    enum values in code for type safety.
    """

    VISITOR = "visitor"
    READER = "reader"
    AUTHOR = "author"
    ADMIN = "admin"


# ============================================================================
# PERMISSION DEFINITIONS
# ============================================================================


class Permission(Enum):
    """Specific permissions that can be granted to roles."""

    # Browsing
    READ_CATALOG = "read_catalog"  # Browse novels, chapter lists, free chapters

    # Reader actions
    WRITE_REVIEWS = "write_reviews"
    WRITE_COMMENTS = "write_comments"
    BUY_COINS = "buy_coins"
    UNLOCK_CHAPTERS = "unlock_chapters"
    TRACK_PROGRESS = "track_progress"  # Bookmarks and favorites

    # Author actions
    PUBLISH = "publish"  # Create and edit own novels and chapters

    # Admin actions
    MODERATE_COMMENTS = "moderate_comments"
    VIEW_STATS = "view_stats"
    MANAGE_USERS = "manage_users"
    FULL_ACCESS = "full_access"


# ============================================================================
# ROLE-PERMISSION MAPPING
# ============================================================================

_READER_PERMISSIONS = {
    Permission.READ_CATALOG,
    Permission.WRITE_REVIEWS,
    Permission.WRITE_COMMENTS,
    Permission.BUY_COINS,
    Permission.UNLOCK_CHAPTERS,
    Permission.TRACK_PROGRESS,
}

ROLE_PERMISSIONS: dict[Role, set[Permission]] = {
    Role.VISITOR: {Permission.READ_CATALOG},
    Role.READER: set(_READER_PERMISSIONS),
    Role.AUTHOR: _READER_PERMISSIONS | {Permission.PUBLISH},
    Role.ADMIN: _READER_PERMISSIONS
    | {
        Permission.PUBLISH,
        Permission.MODERATE_COMMENTS,
        Permission.VIEW_STATS,
        Permission.MANAGE_USERS,
        Permission.FULL_ACCESS,
    },
}

# Permissions an inactive account keeps.
READ_ONLY_PERMISSIONS = frozenset({Permission.READ_CATALOG})


# ============================================================================
# PERMISSION CHECKING FUNCTIONS
# ============================================================================


def _to_role(role: str | Role) -> Role | None:
    if isinstance(role, Role):
        return role
    try:
        return Role(role)
    except ValueError:
        return None


def has_permission(role: str | Role, permission: Permission) -> bool:
    """
    Check if a role has a specific permission.

    Unknown role strings have no permissions.

    Example:
        >>> has_permission("reader", Permission.UNLOCK_CHAPTERS)
        True
        >>> has_permission("reader", Permission.PUBLISH)
        False
    """
    resolved = _to_role(role)
    if resolved is None:
        return False
    permissions = ROLE_PERMISSIONS.get(resolved, set())
    return Permission.FULL_ACCESS in permissions or permission in permissions


def user_has_permission(user: dict, permission: Permission) -> bool:
    """Check a permission for a user row, honoring ``is_active``."""
    if not user.get("is_active", False) and permission not in READ_ONLY_PERMISSIONS:
        return False
    return has_permission(user.get("role", ""), permission)


def get_role_hierarchy_level(role: str | Role) -> int:
    """
    Get the numeric hierarchy level of a role (higher is more privileged).

    Returns:
        1 = visitor, 2 = reader, 3 = author, 4 = admin, 0 = unknown
    """
    hierarchy = {Role.VISITOR: 1, Role.READER: 2, Role.AUTHOR: 3, Role.ADMIN: 4}
    resolved = _to_role(role)
    return hierarchy.get(resolved, 0) if resolved is not None else 0


def can_assign_role(actor_role: str | Role | None, target_role: str | Role) -> bool:
    """
    Check whether an actor may create or promote an account to ``target_role``.

    Anonymous sign-up (``actor_role=None``) and non-admins may pick any role
    below admin. Only admins may grant admin.
    """
    if get_role_hierarchy_level(target_role) == 0:
        return False
    if _to_role(target_role) is not Role.ADMIN:
        return True
    return actor_role is not None and has_permission(actor_role, Permission.MANAGE_USERS)
