"""Redeeming unlock codes and reporting unlock status."""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from .credentials import Identity
from .crypto import HybridDecryptor
from .errors import InvalidPrivateKey, MalformedUnlockCode, ValidationMismatch
from .trial import TrialClock
from .unlock_code import DATE_FORMAT, UnlockClaim, UnlockCode
from ..logging import RequestContext, bind_context, get_logger

logger = get_logger("licensing")


@dataclass
class UnlockResult:
    decrypted_data: str
    record: object


@dataclass
class UnlockStatus:
    unlocked: bool
    trial_period: bool
    has_unlock_record: bool
    remaining_days: int
    message: str

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "unlocked": self.unlocked,
            "trialPeriod": self.trial_period,
            "hasUnlockRecord": self.has_unlock_record,
            "remainingDays": self.remaining_days,
            "message": self.message,
        }


def local_now() -> datetime:
    """Current time in the server's local calendar."""
    return datetime.now().astimezone()


class UnlockService:
    """Validates a submitted unlock code and records it in the ledger."""

    def __init__(
        self,
        decryptor: HybridDecryptor,
        trial_clock: TrialClock,
        ledger,
        today: Optional[Callable[[], datetime]] = None,
    ):
        self.decryptor = decryptor
        self.trial_clock = trial_clock
        self.ledger = ledger
        self._today = today or local_now

    def today(self) -> str:
        return self._today().strftime(DATE_FORMAT)

    async def unlock(
        self,
        identity: Identity,
        wrapped_key_and_iv: str,
        payload: str,
        context: Optional[RequestContext] = None,
    ) -> UnlockResult:
        """
        Redeem an unlock code for the calling identity.

        The code must decrypt to ``<caller's username>,<today>``. On success
        the raw two-part code is upserted into the ledger, replacing any
        earlier record for that username.
        """
        context = (context or RequestContext.new()).with_user(identity.user_id, identity.username)
        log = bind_context(logger, context)

        if not self.decryptor.validate_private_key():
            raise InvalidPrivateKey()

        code = UnlockCode.parse(f"{wrapped_key_and_iv},{payload}")
        if code is None:
            raise MalformedUnlockCode("Missing encryptedAesKeyAndIv or encryptedData")

        log.info("Attempting to redeem unlock code")
        plaintext = self.decryptor.decrypt(code.wrapped_key_and_iv, code.payload)

        # Redemption compares the decrypted parts verbatim
        claim = UnlockClaim.parse(plaintext)
        if claim is None:
            log.warning("Unlock rejected: decrypted data format invalid")
            raise MalformedUnlockCode()

        if claim.username != identity.username:
            log.warning("Unlock rejected: code was issued for another account")
            raise ValidationMismatch("Cannot unlock another identity")

        if not claim.has_valid_date:
            log.warning("Unlock rejected: decrypted date format invalid")
            raise MalformedUnlockCode()

        if claim.date != self.today():
            log.warning("Unlock rejected: code date mismatch or expired")
            raise ValidationMismatch("Unlock code date mismatch or expired")

        submitted = f"{wrapped_key_and_iv},{payload}"
        record = await self.ledger.upsert(claim.username, claim.date, submitted)
        log.info("Unlock code redeemed")
        return UnlockResult(decrypted_data=plaintext, record=record)

    async def status(self, identity: Identity) -> UnlockStatus:
        """Compose trial state and ledger state for the UI."""
        has_record = await self.ledger.get(identity.username) is not None
        base = await self.trial_clock.get_base_time()
        now = self.trial_clock.now()

        if self.trial_clock.is_within(base, now):
            days = self.trial_clock.remaining_days(base, now)
            message = f"Free trial active, {days} day(s) remaining"
            if has_record:
                message += ", and permanently unlocked"
            return UnlockStatus(
                unlocked=True,
                trial_period=True,
                has_unlock_record=has_record,
                remaining_days=days,
                message=message,
            )

        return UnlockStatus(
            unlocked=has_record,
            trial_period=False,
            has_unlock_record=has_record,
            remaining_days=0,
            message="Account permanently unlocked" if has_record else "Trial period has ended, an unlock code is required",
        )
