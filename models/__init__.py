from models.users import User
from models.roles import Role, Permission, UserRole, RolePermission
from models.sessions import UserSession
from models.audit_logs import AuditLog

__all__ = ["User", "Role", "Permission", "UserRole", "RolePermission", "UserSession", "AuditLog"]
