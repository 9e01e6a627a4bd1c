
"""
Utility module initialization file.

Exposes the encryption helpers used to protect the stored credential.
"""

from .security import FernetEncryptor, generate_fernet_key, mask_credential

__all__ = ["FernetEncryptor", "generate_fernet_key", "mask_credential"]
