# tenant_console/utils/security.py
import logging
from typing import Optional
from cryptography.fernet import Fernet, InvalidToken
from base64 import urlsafe_b64decode

logger = logging.getLogger(__name__)


def generate_fernet_key() -> str:
    """Generates a new Fernet key and returns it as a string."""
    key_bytes = Fernet.generate_key()
    return key_bytes.decode('utf-8')


def mask_credential(credential: Optional[str]) -> str:
    """Short, log-safe representation of a credential."""
    if not credential:
        return "None"
    if len(credential) <= 8:
        return "********"
    return f"{credential[:4]}...{credential[-2:]}"


class FernetEncryptor:
    """Handles encryption and decryption of the stored credential."""

    def __init__(self, encryption_key: Optional[str]):
        """
        Initialize the encryptor with a Fernet-compatible key.

        Args:
            encryption_key: Base64-encoded Fernet key string, or None
        """
        self.fernet_instance: Optional[Fernet] = None
        self.key_valid = False
        if not encryption_key:
            return
        try:
            key_bytes = encryption_key.encode('utf-8')

            # Fernet keys must decode to exactly 32 bytes
            decoded_key_bytes = urlsafe_b64decode(key_bytes)
            if len(decoded_key_bytes) != 32:
                logger.error(
                    f"Invalid CONSOLE_ENCRYPTION_KEY length after base64 decoding. "
                    f"Expected 32 bytes, got {len(decoded_key_bytes)}."
                )
                return
            self.fernet_instance = Fernet(key_bytes)
            self.key_valid = True
            logger.debug("FernetEncryptor initialized with a valid key.")
        except (ValueError, TypeError) as e:
            logger.error(f"Failed to initialize FernetEncryptor with provided key. Error: {e}")

    def encrypt(self, data: str) -> Optional[str]:
        """Encrypt a string, or return None when no valid key is configured."""
        if not self.fernet_instance or not self.key_valid:
            logger.error("Cannot encrypt: Fernet instance not available or key is invalid.")
            return None
        return self.fernet_instance.encrypt(data.encode('utf-8')).decode('utf-8')

    def decrypt(self, encrypted_data: str) -> Optional[str]:
        """
        Decrypt a Fernet-encrypted string.

        Returns:
            Decrypted plain text string, or None if decryption fails
        """
        if not self.fernet_instance or not self.key_valid:
            logger.error("Cannot decrypt: Fernet instance not available or key is invalid.")
            return None
        try:
            return self.fernet_instance.decrypt(encrypted_data.encode('utf-8')).decode('utf-8')
        except InvalidToken:
            logger.error(
                "Decryption failed: Invalid token. "
                "This may be due to an incorrect key or corrupted data."
            )
            return None
