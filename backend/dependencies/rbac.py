"""
RBAC dependencies for FastAPI routes
Role-based access control implemented as dependencies that run after authentication.

A caller is an ``admin`` when their user id exists in the ``admins`` table
(resolved by ``get_current_user``); everyone else is a ``user`` and holds no
moderation permissions. Ownership checks (a vendor editing their own
listing) stay in the routes.
"""
from fastapi import HTTPException, status, Request
import logging

logger = logging.getLogger(__name__)

RESOURCES_FOR_ROLES = {
    'admin': {
        'admin': ['read'],
        'admin/vendors': ['read', 'write'],
        'admin/materials': ['read', 'write', 'delete'],
        'admin/riders': ['read', 'write'],
    },
}

def has_permission(user_role: str, resource_name: str, required_permission: str) -> bool:
    """Check if user role has permission for the resource and action"""
    if user_role not in RESOURCES_FOR_ROLES:
        return False

    user_permissions = RESOURCES_FOR_ROLES[user_role]

    if resource_name in user_permissions:
        return required_permission in user_permissions[resource_name]

    parent_resource = resource_name.split('/')[0] if '/' in resource_name else resource_name
    if parent_resource in user_permissions:
        return required_permission in user_permissions[parent_resource]

    return False

def require_permission(resource: str, permission: str):
    """
    Create an RBAC dependency that checks permissions

    Args:
        resource: Resource name, e.g. ``admin/vendors``
        permission: ``read``, ``write`` or ``delete``
    """
    def check_rbac(request: Request):
        current_user = getattr(request.state, 'current_user', None)
        if not current_user:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Authentication required"
            )

        user_role = 'admin' if getattr(current_user, 'is_admin', False) else 'user'

        if not has_permission(user_role, resource, permission):
            logger.warning(f"Access denied - User: {current_user.user_id}, Resource: {resource}, Permission: {permission}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. {user_role.title()} role does not have {permission} permission for {resource}"
            )

        return True

    return check_rbac

# Admin permissions
require_admin = require_permission("admin", "read")

require_vendor_moderation = require_permission("admin/vendors", "read")
require_vendor_moderation_write = require_permission("admin/vendors", "write")

require_material_moderation = require_permission("admin/materials", "read")
require_material_moderation_write = require_permission("admin/materials", "write")

require_rider_moderation = require_permission("admin/riders", "read")
require_rider_moderation_write = require_permission("admin/riders", "write")
