"""
Utility functions and classes for the SmartWealth tracker.
"""

from .validators import DataValidator, ValidationError
from .serialization import DataSerializer
from .encryption import CredentialEncryption, EncryptionError

__all__ = [
    'DataValidator', 'ValidationError',
    'DataSerializer',
    'CredentialEncryption', 'EncryptionError',
]
