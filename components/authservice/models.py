from __future__ import annotations
import threading
from typing import Dict, Optional

import bcrypt

from .contracts import PasswordHasherPort, User, UserStorePort
from .errors import UserAlreadyExists

class BcryptPasswordHasher(PasswordHasherPort):
    """
    bcrypt hasher (auto-salted). `rounds` is the log2 work factor.
    """
    def __init__(self, rounds: int = 12):
        if not 4 <= rounds <= 31:
            raise ValueError("bcrypt rounds must be between 4 and 31")
        self.rounds = rounds

    def hash(self, plaintext: str) -> str:
        return bcrypt.hashpw(plaintext.encode("utf-8"), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def matches(self, plaintext: str, hashed: str) -> bool:
        try:
            return bcrypt.checkpw(plaintext.encode("utf-8"), hashed.encode("utf-8"))
        except (ValueError, TypeError):
            return False

class InMemoryUserStore(UserStorePort):
    """
    Test/dev store keyed by email. Thread-safe with a coarse-grained lock;
    `save` is an atomic check-and-insert.
    """
    def __init__(self):
        self._users_by_email: Dict[str, User] = {}
        self._lock = threading.RLock()

    def find_by_email(self, email: str) -> Optional[User]:
        with self._lock:
            return self._users_by_email.get(email)

    def save(self, user: User) -> User:
        with self._lock:
            if user.email in self._users_by_email:
                raise UserAlreadyExists(user.email)
            self._users_by_email[user.email] = user
            return user

    def __len__(self) -> int:
        with self._lock:
            return len(self._users_by_email)
