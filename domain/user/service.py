"""
User domain service - rules that span more than a single entity field
"""
from dataclasses import replace
import hashlib
import secrets

from .entity import User


class PasswordService:
    """Password hashing for stored credentials"""

    ITERATIONS = 100_000

    @staticmethod
    def hash_password(password: str) -> str:
        salt = secrets.token_hex(16)
        pwd_hash = hashlib.pbkdf2_hmac('sha256',
                                       password.encode('utf-8'),
                                       salt.encode('utf-8'),
                                       PasswordService.ITERATIONS)
        return f"{salt}${pwd_hash.hex()}"

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        try:
            salt, pwd_hash = hashed_password.split('$')
        except ValueError:
            return False
        new_hash = hashlib.pbkdf2_hmac('sha256',
                                      plain_password.encode('utf-8'),
                                      salt.encode('utf-8'),
                                      PasswordService.ITERATIONS)
        return secrets.compare_digest(new_hash.hex(), pwd_hash)


class UserDomainService:
    """Prepares users for persistence"""

    def __init__(self, password_service: PasswordService | None = None):
        self.password_service = password_service or PasswordService()

    def prepare_for_storage(self, user: User) -> User:
        """Validate and return a copy whose password is hashed.

        The caller's instance is left untouched so the plaintext never
        reaches the repository and the echoed entity keeps what was sent.
        """
        user.validate()
        return replace(user, password=self.password_service.hash_password(user.password))
