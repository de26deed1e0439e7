from core.database import Base
from sqlalchemy import Column, Integer, String, ForeignKey
from sqlalchemy.orm import relationship


class UserRole(Base):
    __tablename__ = "user_roles"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    role_id = Column(Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True)


class RolePermission(Base):
    __tablename__ = "role_permissions"

    role_id = Column(Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True)
    permission_id = Column(Integer, ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True)


class Role(Base):
    """
    Named bundle of permissions. Reference data: seeded, rarely changed.
    """
    __tablename__ = "roles"

    #pk
    id = Column(Integer, primary_key=True, index=True)

    #relationships
    users = relationship("User", secondary="user_roles", back_populates="roles")
    permissions = relationship("Permission", secondary="role_permissions", back_populates="roles")

    name = Column(String(100), unique=True, nullable=False)


class Permission(Base):
    __tablename__ = "permissions"

    #pk
    id = Column(Integer, primary_key=True, index=True)

    #relationships
    roles = relationship("Role", secondary="role_permissions", back_populates="permissions")

    code = Column(String(64), unique=True, nullable=False, index=True)
    label = Column(String(255))
