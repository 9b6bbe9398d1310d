# (c) Copyright Datacraft, 2026
"""Database models and operations for roles."""
from .orm import PrincipalModel, PrincipalAttributeModel, RoleModel, PermissionModel, roles_permissions, principal_roles
from .api import RoleDB

__all__ = [
	"PrincipalModel",
	"PrincipalAttributeModel",
	"RoleModel",
	"PermissionModel",
	"roles_permissions",
	"principal_roles",
	"RoleDB",
]
