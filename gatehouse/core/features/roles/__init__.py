# (c) Copyright Datacraft, 2026
"""
Role-Based Access Control.

Roles own sets of (resource, action) permissions; principals hold roles
and may carry stored attributes used by policy conditions.
A role's permissions count only while the role is active.
"""
from .models import Permission, Role, Principal, ROLE_NAME_MAX_LENGTH, ATTRIBUTE_NAME_MAX_LENGTH
from .service import RoleService, PrincipalService

__all__ = [
	# Models
	"Permission",
	"Role",
	"Principal",
	"ROLE_NAME_MAX_LENGTH",
	"ATTRIBUTE_NAME_MAX_LENGTH",
	# Services
	"RoleService",
	"PrincipalService",
]
