from sqlalchemy.orm import Session
from core.config import settings
from models.users import User
from models.roles import Role, Permission
from utils.hashing import get_password_hash
from utils.logger import get_logger

logger = get_logger(__name__)

PERMISSIONS = [
    ("USER_MANAGE", "Manage users"),
    ("PROJECT_VIEW", "View projects"),
    ("PROJECT_EDIT", "Edit projects"),
    ("DOC_UPLOAD", "Upload documents"),
    ("RULE_EDIT", "Edit alert rules"),
    ("COMPLIANCE_EDIT", "Edit compliance items"),
    ("AUDIT_READ", "Read the audit trail"),
]


def ensure_permission(db: Session, code: str, label: str) -> Permission:
    model = db.query(Permission).filter(Permission.code == code).one_or_none()
    if model:
        if model.label != label:
            model.label = label
            db.commit()
        return model

    model = Permission(code=code, label=label)
    db.add(model)
    db.commit()
    db.refresh(model)
    return model


def ensure_role(db: Session, name: str, permission_codes: list[str] | None = None) -> Role:
    """Creates the role if missing and adds any permissions it lacks. Never removes."""
    model = db.query(Role).filter(Role.name == name).one_or_none()
    if not model:
        model = Role(name=name)
        db.add(model)

    if permission_codes:
        have = {perm.code for perm in model.permissions}
        missing = [code for code in permission_codes if code not in have]
        if missing:
            model.permissions.extend(
                db.query(Permission).filter(Permission.code.in_(missing)).all()
            )

    db.commit()
    db.refresh(model)
    return model


def ensure_user_with_role(db: Session, email: str, password: str, role: Role) -> tuple[User, bool]:
    """
    Returns (user, created). An existing user keeps its password; it only
    gains the role if it doesn't have it yet.
    """
    email = email.lower().strip()
    user = db.query(User).filter(User.email == email).one_or_none()
    created = False

    if not user:
        user = User(email=email, hashed_password=get_password_hash(password), is_active=True)
        db.add(user)
        created = True

    if role not in user.roles:
        user.roles.append(role)

    db.commit()
    db.refresh(user)
    return user, created


def bootstrap_auth(db: Session, admin_email: str | None = None, admin_password: str | None = None) -> dict:
    """
    Seeds the permission catalogue, the superuser role and an admin account.
    Safe to run repeatedly.
    """
    admin_email = admin_email or settings.BOOTSTRAP_ADMIN_EMAIL
    admin_password = admin_password or settings.BOOTSTRAP_ADMIN_PASSWORD

    for code, label in PERMISSIONS:
        ensure_permission(db, code, label)

    superuser = ensure_role(db, settings.SUPERUSER_ROLE)
    user, created = ensure_user_with_role(db, admin_email, admin_password, superuser)

    logger.info(
        "Auth bootstrap complete",
        extra={"user_id": user.id, "email": user.email, "user_created": created}
    )

    return {
        "user_id": user.id,
        "email": user.email,
        "role": superuser.name,
        "status": "created" if created else "exists"
    }
