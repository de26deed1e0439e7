from passlib.context import CryptContext
from passlib.exc import UnknownHashError

# argon2 for new hashes; bcrypt kept so legacy hashes still verify and get upgraded
pwd_context = CryptContext(schemes=['argon2', 'bcrypt'], deprecated='auto')


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    """
    True only when the password matches the stored hash.
    A missing, malformed or unrecognised hash is a plain mismatch.
    """
    if not hashed_password:
        pwd_context.dummy_verify()
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (UnknownHashError, ValueError, TypeError):
        return False


def dummy_verify() -> bool:
    """
    Spend the same time as a real verification. Used when no user matched,
    so an unknown email costs as much as a wrong password.
    """
    pwd_context.dummy_verify()
    return False


def needs_rehash(hashed_password: str) -> bool:
    try:
        return pwd_context.needs_update(hashed_password)
    except (UnknownHashError, ValueError):
        return False
