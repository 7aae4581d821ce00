"""
One-way hashing of patient-identifying fields before they are persisted.
"""
import hashlib
import hmac
import re
from typing import Optional

from config import get_settings


class SecurityHasher:
    """
    Keyed one-way hashing (HMAC-SHA256) for names, phones and e-mails.

    The same secret must be used for the lifetime of the stored data,
    otherwise compare_hash can no longer match stored digests.
    """

    def __init__(self, secret: Optional[str] = None):
        self._secret = (secret or get_settings().pii_hash_secret).encode("utf-8")

    def hash_sensitive_data(self, data) -> Optional[str]:
        if data is None or str(data) == "":
            return None
        return hmac.new(self._secret, str(data).encode("utf-8"), hashlib.sha256).hexdigest()

    def compare_hash(self, data, digest: Optional[str]) -> bool:
        if not data or not digest:
            return False
        expected = self.hash_sensitive_data(data)
        return hmac.compare_digest(expected, digest)

    def hash_name(self, name: Optional[str]) -> Optional[str]:
        if not name:
            return None
        # Case and spacing do not change who the patient is
        return self.hash_sensitive_data(" ".join(name.split()).lower())

    def hash_phone(self, phone) -> Optional[str]:
        if not phone:
            return None
        digits = re.sub(r"\D", "", str(phone))
        return self.hash_sensitive_data(digits or phone)

    def hash_phone_partial(self, phone) -> Optional[str]:
        """Hash all but the last four digits, keeping them for display as `<hash>:<last4>`."""
        if not phone:
            return None
        digits = re.sub(r"\D", "", str(phone))
        if len(digits) <= 4:
            return self.hash_sensitive_data(phone)
        hashed = self.hash_sensitive_data(digits[:-4])
        return f"{hashed}:{digits[-4:]}" if hashed else None

    def hash_email(self, email: Optional[str]) -> Optional[str]:
        if not email:
            return None
        return self.hash_sensitive_data(email.strip().lower())
