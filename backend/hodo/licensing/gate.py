"""
The unlock gate: decides whether a request may proceed.

Reads are never gated. Writes pass during the trial window, and after it
only when the caller's stored unlock code still decrypts to the caller's
own username and the recorded date. The stored code is re-validated on
every gated request, so a corrupted or foreign code re-locks the account.
"""

from enum import Enum
from typing import Optional

from .credentials import CredentialCodec, Identity
from .crypto import HybridDecryptor
from .errors import (
    AuthenticationInvalid,
    AuthenticationMissing,
    DecryptionFailed,
    UnlockRequired,
    ValidationMismatch,
)
from .trial import TrialClock
from .unlock_code import UnlockClaim, UnlockCode
from ..logging import RequestContext, bind_context, get_logger

logger = get_logger("licensing.gate")


class Operation(str, Enum):
    """What a handler does to stored data."""
    READ = "read"
    WRITE = "write"


class Gate:
    """Authenticates a credential and enforces the unlock policy for writes."""

    def __init__(
        self,
        codec: CredentialCodec,
        decryptor: HybridDecryptor,
        trial_clock: TrialClock,
        ledger,
    ):
        self.codec = codec
        self.decryptor = decryptor
        self.trial_clock = trial_clock
        self.ledger = ledger

    def authenticate(self, credential: Optional[str]) -> Identity:
        if not credential:
            raise AuthenticationMissing()
        identity = self.codec.verify(credential)
        if identity is None:
            raise AuthenticationInvalid()
        return identity

    async def evaluate(
        self,
        credential: Optional[str],
        operation: Operation,
        exempt: bool = False,
        context: Optional[RequestContext] = None,
    ) -> Identity:
        """
        Run the gate for one request.

        Args:
            credential: Raw token from the header or cookie, if any
            operation: Whether the handler reads or writes
            exempt: Handler opted out of the unlock check
            context: Request context for log correlation

        Returns:
            The caller's identity when the request may proceed

        Raises:
            AuthenticationMissing / AuthenticationInvalid: 401
            UnlockRequired / ValidationMismatch: 403
        """
        context = context or RequestContext.new()
        log = bind_context(logger, context)

        try:
            identity = self.authenticate(credential)
        except AuthenticationMissing:
            log.warning("No authentication token provided")
            raise
        except AuthenticationInvalid:
            log.warning("Invalid authentication token")
            raise

        log = bind_context(logger, context.with_user(identity.user_id, identity.username))

        if operation is Operation.READ or exempt:
            return identity

        if await self.trial_clock.is_in_trial_period():
            return identity

        await self.check_unlocked(identity, log)
        return identity

    async def check_unlocked(self, identity: Identity, log=None) -> None:
        """Re-validate the caller's stored unlock code."""
        log = log or logger
        record = await self.ledger.get(identity.username)
        if record is None:
            log.warning("Write rejected: trial ended and no unlock record")
            raise UnlockRequired()

        code = UnlockCode.parse(record.unlock_code)
        if code is None:
            log.warning("Write rejected: stored unlock code is malformed")
            raise ValidationMismatch()

        try:
            plaintext = self.decryptor.decrypt(code.wrapped_key_and_iv, code.payload)
        except DecryptionFailed:
            log.warning("Write rejected: stored unlock code does not decrypt")
            raise ValidationMismatch() from None

        claim = UnlockClaim.parse(plaintext, strip=True)
        if (
            claim is None
            or claim.username != identity.username.strip()
            or claim.date != record.date.strip()
            or claim.username != record.username.strip()
        ):
            log.warning("Write rejected: stored unlock code does not match the account")
            raise ValidationMismatch()
