"""
Roles and Permissions Configuration
This config defines the fixed role set, the permission catalogue and which
role grants which permission.
Used by the RBAC service, the seed script and the /roles endpoints.
"""

# Highest priority first. A user holding several roles in one context
# resolves to the first match in this list.
ROLE_HIERARCHY = ["owner", "admin", "moderator", "member", "viewer"]

NO_ROLE = "none"

ROLE_DESCRIPTIONS = {
    "owner": "Owner with full permissions",
    "admin": "Administrator",
    "moderator": "Moderator",
    "member": "Regular member",
    "viewer": "Read-only access",
}

# Resources and their actions, named "<resource>.<action>"
RESOURCES = {
    "branch": {
        "actions": ["create", "read", "update", "delete", "moderate", "invite", "admin"],
        "description": "branches",
    },
    "leaf": {
        "actions": ["create", "read", "update", "delete", "moderate"],
        "description": "leaves",
    },
    "comment": {
        "actions": ["create", "read", "update", "delete", "moderate"],
        "description": "comments",
    },
    "member": {
        "actions": ["read", "invite", "moderate", "admin"],
        "description": "members",
    },
}

PERMISSION_DESCRIPTIONS = {
    "branch.create": "Create new branches",
    "branch.read": "View branch details",
    "branch.update": "Update branch settings",
    "branch.delete": "Delete branches",
    "branch.moderate": "Moderate branch content",
    "branch.invite": "Invite members to branch",
    "branch.admin": "Full branch administration",
    "member.read": "View member list",
    "member.invite": "Invite new members",
    "member.moderate": "Moderate members",
    "member.admin": "Full member administration",
}

# Exclusions per role; owner gets everything
_ADMIN_EXCLUDED = {"branch.delete"}
_MODERATOR_ACTIONS = {"read", "moderate", "create"}
_MODERATOR_EXCLUDED = {"branch.update", "branch.delete", "branch.admin"}
_MEMBER_ACTIONS = {"read", "create"}
_MEMBER_EXCLUDED = {
    "branch.create", "branch.update", "branch.delete", "branch.admin",
    "member.invite", "member.moderate", "member.admin",
}

# Static permission objects, one per role
ROLE_PERMISSION_TABLE = {
    "owner": {
        "can_read": True,
        "can_update": True,
        "can_delete": True,
        "can_create_posts": True,
        "can_moderate": True,
        "can_invite_members": True,
        "can_manage_members": True,
    },
    "admin": {
        "can_read": True,
        "can_update": True,
        "can_delete": False,  # Admins can't delete branches
        "can_create_posts": True,
        "can_moderate": True,
        "can_invite_members": True,
        "can_manage_members": True,
    },
    "moderator": {
        "can_read": True,
        "can_update": False,
        "can_delete": False,
        "can_create_posts": True,
        "can_moderate": True,
        "can_invite_members": False,
        "can_manage_members": False,
    },
    "member": {
        "can_read": True,
        "can_update": False,
        "can_delete": False,
        "can_create_posts": True,
        "can_moderate": False,
        "can_invite_members": False,
        "can_manage_members": False,
    },
    "viewer": {
        "can_read": True,
        "can_update": False,
        "can_delete": False,
        "can_create_posts": False,
        "can_moderate": False,
        "can_invite_members": False,
        "can_manage_members": False,
    },
}


def _role_grants(role_name: str, permission_name: str, action: str) -> bool:
    if role_name == "owner":
        return True
    if role_name == "admin":
        return permission_name not in _ADMIN_EXCLUDED
    if role_name == "moderator":
        return action in _MODERATOR_ACTIONS and permission_name not in _MODERATOR_EXCLUDED
    if role_name == "member":
        return action in _MEMBER_ACTIONS and permission_name not in _MEMBER_EXCLUDED
    if role_name == "viewer":
        return action == "read"
    return False


def get_permission_matrix():
    """
    Returns a dictionary with all permissions and the system roles
    Format: {
        "permissions": [
            {"name": "leaf.create", "resource": "leaf", "action": "create", "description": "..."},
            ...
        ],
        "roles": [
            {"name": "owner", "description": "...", "permissions": ["branch.admin", ...]},
            ...
        ]
    }
    Roles are listed in priority order.
    """
    permissions = []
    for resource, resource_config in RESOURCES.items():
        for action in resource_config["actions"]:
            name = f"{resource}.{action}"
            permissions.append({
                "name": name,
                "resource": resource,
                "action": action,
                "description": PERMISSION_DESCRIPTIONS.get(
                    name, f"{action.capitalize()} {resource_config['description']}"
                ),
            })

    roles = []
    for role_name in ROLE_HIERARCHY:
        granted = [
            p["name"] for p in permissions
            if _role_grants(role_name, p["name"], p["action"])
        ]
        roles.append({
            "name": role_name,
            "description": ROLE_DESCRIPTIONS[role_name],
            "permissions": sorted(granted),
        })

    return {
        "permissions": permissions,
        "roles": roles
    }


# Export the matrix for use in seed scripts
PERMISSION_MATRIX = get_permission_matrix()
