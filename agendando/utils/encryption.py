# ===== agendando/utils/encryption.py =====
"""Fernet encryption for provider tokens stored in the integrations table"""
from typing import Optional

from cryptography.fernet import Fernet

from agendando.config.settings import get_settings


def get_cipher() -> Fernet:
    """Get Fernet cipher from CALENDAR_ENCRYPTION_KEY"""
    key = get_settings().CALENDAR_ENCRYPTION_KEY
    if not key:
        raise RuntimeError("CALENDAR_ENCRYPTION_KEY is not configured")
    return Fernet(key.encode() if isinstance(key, str) else key)


def encrypt_token(token: Optional[str]) -> Optional[bytes]:
    """Encrypt a token string"""
    if not token:
        return None
    return get_cipher().encrypt(token.encode())


def decrypt_token(encrypted_token: Optional[bytes]) -> Optional[str]:
    """Decrypt a token"""
    if not encrypted_token:
        return None
    return get_cipher().decrypt(encrypted_token).decode()
