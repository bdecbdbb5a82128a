"""
auth/passwords.py -- bcrypt password hashing.

Using bcrypt directly rather than passlib[bcrypt] because passlib's internal
wrap-bug detection creates a password longer than 72 bytes, which bcrypt 4.x
rejects with an explicit error.

bcrypt embeds a fresh random salt in every digest, so two hashes of the same
secret differ while both verify. checkpw compares in constant time.

Layer rule: no imports from api/ or records/.
"""

from __future__ import annotations

import bcrypt

# bcrypt only looks at the first 72 bytes of input. Longer secrets are
# rejected outright instead of being silently truncated.
MAX_PASSWORD_BYTES = 72


class PasswordHasher:
    """Stateless apart from the configured cost factor.

    Usage:
        hasher = PasswordHasher(rounds=12)
        digest = hasher.hash("hunter2")
        hasher.verify("hunter2", digest)  # True
    """

    def __init__(self, rounds: int = 12) -> None:
        self.rounds = rounds
        # Computed up front so the first unknown-email login is not measurably
        # slower than later ones.
        self._dummy_hash: str = self.hash("vaultdesk_timing_dummy")

    def hash(self, plain: str) -> str:
        """Return a salted bcrypt digest of plain.

        Raises ValueError for secrets over MAX_PASSWORD_BYTES. The API layer
        validates the limit first, so this only fires on programmatic misuse.
        """
        encoded = plain.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password exceeds {MAX_PASSWORD_BYTES} bytes.")
        return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plain: str, hashed: str) -> bool:
        """Return True if plain matches the bcrypt digest.

        A malformed digest is a failed verification, not an error: a corrupt
        record must look exactly like a wrong password to the caller.
        """
        try:
            encoded = plain.encode("utf-8")
            if len(encoded) > MAX_PASSWORD_BYTES:
                return False
            return bcrypt.checkpw(encoded, hashed.encode("utf-8"))
        except (ValueError, TypeError, AttributeError):
            return False

    def verify_dummy(self, plain: str) -> None:
        """Burn one bcrypt verification against a throwaway digest.

        Called when the email is unknown so the response takes as long as a
        wrong-password check and does not reveal which emails are registered.
        """
        self.verify(plain, self._dummy_hash)
