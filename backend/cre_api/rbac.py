"""Role-based access control (RBAC) for brokerage users."""

from enum import Enum
from fastapi import Depends, HTTPException, status
import logging

from cre_api.auth import get_current_user
from cre_api.models import User

logger = logging.getLogger(__name__)


class UserRole(str, Enum):
    """Profile roles."""
    ADMIN = "admin"
    BROKER = "broker"
    OWNER = "owner"
    INVESTOR = "investor"
    TENANT = "tenant"
    MEMBER = "member"


class Permission(str, Enum):
    """Granular permissions for different actions."""
    # Property data
    VIEW_PROPERTIES = "view_properties"
    EDIT_PROPERTIES = "edit_properties"
    IMPORT_PROPERTIES = "import_properties"
    VERIFY_PROPERTIES = "verify_properties"

    # CRM
    VIEW_CRM = "view_crm"
    EDIT_CRM = "edit_crm"

    # Prospecting
    MANAGE_PROSPECT_LISTS = "manage_prospect_lists"

    # Listing sites
    MANAGE_LISTINGS = "manage_listings"

    # Asset management
    VIEW_ASSETS = "view_assets"
    MANAGE_ASSETS = "manage_assets"


_BROKER_PERMISSIONS = [
    Permission.VIEW_PROPERTIES,
    Permission.EDIT_PROPERTIES,
    Permission.IMPORT_PROPERTIES,
    Permission.VERIFY_PROPERTIES,
    Permission.VIEW_CRM,
    Permission.EDIT_CRM,
    Permission.MANAGE_PROSPECT_LISTS,
    Permission.MANAGE_LISTINGS,
    Permission.VIEW_ASSETS,
    Permission.MANAGE_ASSETS,
]

# Role to permissions mapping
ROLE_PERMISSIONS = {
    UserRole.ADMIN: list(Permission),
    UserRole.BROKER: _BROKER_PERMISSIONS,
    UserRole.OWNER: [
        Permission.VIEW_PROPERTIES,
        Permission.VIEW_CRM,
        Permission.VIEW_ASSETS,
        Permission.MANAGE_ASSETS,
    ],
    UserRole.INVESTOR: [
        Permission.VIEW_PROPERTIES,
        Permission.VIEW_ASSETS,
    ],
    UserRole.TENANT: [
        Permission.VIEW_PROPERTIES,
    ],
    UserRole.MEMBER: [
        Permission.VIEW_PROPERTIES,
        Permission.VIEW_CRM,
        Permission.EDIT_CRM,
        Permission.MANAGE_PROSPECT_LISTS,
    ],
}


def has_permission(user: User, permission: Permission) -> bool:
    """Check if user has a specific permission."""
    try:
        user_role = UserRole(user.role)
    except ValueError:
        return False
    return permission in ROLE_PERMISSIONS.get(user_role, [])


def check_permission(user: User, permission: Permission):
    """Raise exception if user doesn't have permission."""
    if not has_permission(user, permission):
        logger.warning(
            f"Permission denied: {user.email} (role: {user.role}) "
            f"attempted {permission.value}"
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Permission denied. Required permission: {permission.value}"
        )


# Dependency factories for common permission checks
def require_permission(permission: Permission):
    """Dependency factory to require a specific permission."""
    async def permission_checker(current_user: User = Depends(get_current_user)):
        check_permission(current_user, permission)
        return current_user
    return permission_checker


# Specific permission dependencies
require_view_properties = require_permission(Permission.VIEW_PROPERTIES)
require_edit_properties = require_permission(Permission.EDIT_PROPERTIES)
require_import_properties = require_permission(Permission.IMPORT_PROPERTIES)
require_verify_properties = require_permission(Permission.VERIFY_PROPERTIES)

require_view_crm = require_permission(Permission.VIEW_CRM)
require_edit_crm = require_permission(Permission.EDIT_CRM)

require_prospecting = require_permission(Permission.MANAGE_PROSPECT_LISTS)
require_manage_listings = require_permission(Permission.MANAGE_LISTINGS)

require_view_assets = require_permission(Permission.VIEW_ASSETS)
require_manage_assets = require_permission(Permission.MANAGE_ASSETS)
