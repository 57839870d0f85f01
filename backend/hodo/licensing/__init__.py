"""Credential and unlock-code licensing for the Hodo backend."""

from .credentials import CredentialCodec, Identity, extract_bearer_token
from .crypto import HybridDecryptor
from .errors import (
    AuthenticationInvalid,
    AuthenticationMissing,
    DecryptionFailed,
    InvalidPrivateKey,
    LicensingError,
    MalformedUnlockCode,
    StorageUnavailable,
    UnlockRequired,
    ValidationMismatch,
)
from .gate import Gate, Operation
from .trial import TrialClock
from .unlock import UnlockService, UnlockStatus

__all__ = [
    'CredentialCodec',
    'Identity',
    'extract_bearer_token',
    'HybridDecryptor',
    'AuthenticationInvalid',
    'AuthenticationMissing',
    'DecryptionFailed',
    'InvalidPrivateKey',
    'LicensingError',
    'MalformedUnlockCode',
    'StorageUnavailable',
    'UnlockRequired',
    'ValidationMismatch',
    'Gate',
    'Operation',
    'TrialClock',
    'UnlockService',
    'UnlockStatus',
]
