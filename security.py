import hashlib
import hmac
import secrets

PBKDF2_ITERATIONS = 100_000


def hash_password(password: str, salt: str = None) -> str:
    """Hash a password as ``salt$digest`` using PBKDF2-SHA256"""
    if salt is None:
        salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), PBKDF2_ITERATIONS)
    return f"{salt}${digest.hex()}"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a plain password against a stored ``salt$digest`` hash"""
    salt, sep, _ = hashed_password.partition("$")
    if not sep:
        return False
    return hmac.compare_digest(hash_password(plain_password, salt), hashed_password)
