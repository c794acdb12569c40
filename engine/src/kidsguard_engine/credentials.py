"""Parent PIN storage and verification with brute-force lockout."""

import logging
import math

from kidsguard_shared import StorageKey

from .clock import Clock, now_ms
from .errors import IncorrectCurrentPin, LockedOut, PersistenceFailure
from .storage import KeyValueStore, SecretStore

logger = logging.getLogger(__name__)

PIN_LENGTH = 4


def is_valid_pin(pin: str) -> bool:
    """Check the input format expected from PIN entry (exactly 4 digits)."""
    return len(pin) == PIN_LENGTH and pin.isdigit()


def _parse_int(raw: str) -> int | None:
    try:
        return int(raw)
    except ValueError:
        return None


def lockout_duration_ms(failed_attempts: int, threshold: int = 5, base_ms: int = 60_000) -> int:
    """Lockout length after ``failed_attempts``, doubling per batch of failures."""
    return 2 ** (failed_attempts // threshold) * base_ms


class CredentialStore:
    """Gates parent-only settings behind a single shared PIN.

    The PIN lives in the secret store. Failed attempts and the lockout
    deadline live in plain key-value storage and are reset lazily: there is
    no timer, an elapsed lockout is cleared the next time ``verify`` runs.
    """

    def __init__(
        self,
        secrets: SecretStore,
        preferences: KeyValueStore,
        clock: Clock = now_ms,
        lockout_threshold: int = 5,
        lockout_base_ms: int = 60_000,
    ):
        self._secrets = secrets
        self._preferences = preferences
        self._clock = clock
        self._lockout_threshold = lockout_threshold
        self._lockout_base_ms = lockout_base_ms

    async def save(self, pin: str) -> None:
        """Store ``pin``, replacing any previous one.

        Raises PersistenceFailure if the secret store rejects the write.
        """
        try:
            await self._secrets.set_secret(StorageKey.PIN, pin)
        except PersistenceFailure:
            logger.exception("Failed to save PIN")
            raise
        except Exception as e:
            logger.exception("Failed to save PIN")
            raise PersistenceFailure("Failed to save PIN") from e
        logger.info("PIN saved")

    async def verify(self, candidate: str) -> bool:
        """Check ``candidate`` against the stored PIN.

        Returns False on mismatch, when no PIN is configured, or when storage
        fails. Raises LockedOut while a lockout is active and on the failed
        attempt that starts one.
        """
        try:
            return await self._verify(candidate)
        except LockedOut:
            raise
        except Exception:
            logger.exception("Error verifying PIN")
            return False

    async def _verify(self, candidate: str) -> bool:
        raw_lockout = await self._preferences.get_string(StorageKey.LOCKOUT_UNTIL)
        if raw_lockout is not None:
            lockout_until = _parse_int(raw_lockout)
            now = self._clock()
            if lockout_until is None:
                logger.warning("Discarding unreadable lockout deadline %r", raw_lockout)
            elif now < lockout_until:
                remaining = math.ceil((lockout_until - now) / 1000)
                logger.info("PIN entry refused, locked out for %d more seconds", remaining)
                raise LockedOut(remaining)
            else:
                logger.info("Lockout period has passed, clearing failed attempts")
            await self._preferences.remove_key(StorageKey.LOCKOUT_UNTIL)
            await self._preferences.remove_key(StorageKey.FAILED_ATTEMPTS)

        stored = await self._secrets.get_secret(StorageKey.PIN)
        if stored is None:
            logger.debug("No PIN configured")
            return False

        if stored != candidate:
            await self._record_failed_attempt()
            return False

        await self._preferences.remove_key(StorageKey.FAILED_ATTEMPTS)
        logger.debug("PIN verified")
        return True

    async def _record_failed_attempt(self) -> None:
        raw_count = await self._preferences.get_string(StorageKey.FAILED_ATTEMPTS)
        previous = 0 if raw_count is None else _parse_int(raw_count)
        if previous is None:
            logger.warning("Discarding unreadable failed attempt count %r", raw_count)
            previous = 0
        failed_attempts = previous + 1
        await self._preferences.set_string(StorageKey.FAILED_ATTEMPTS, str(failed_attempts))
        logger.warning("Incorrect PIN entered (%d failed attempts)", failed_attempts)

        if failed_attempts % self._lockout_threshold != 0:
            return

        duration_ms = lockout_duration_ms(
            failed_attempts, self._lockout_threshold, self._lockout_base_ms
        )
        await self._preferences.set_string(
            StorageKey.LOCKOUT_UNTIL, str(self._clock() + duration_ms)
        )
        logger.warning("Too many failed attempts, locked out for %d seconds", duration_ms // 1000)
        raise LockedOut(duration_ms // 1000)

    async def change_pin(self, old_pin: str, new_pin: str) -> None:
        """Replace the PIN after re-verifying the current one.

        A wrong ``old_pin`` counts toward lockout like any other attempt.
        """
        if not await self.verify(old_pin):
            logger.warning("PIN change rejected, current PIN is incorrect")
            raise IncorrectCurrentPin()
        await self.save(new_pin)
        logger.info("PIN changed")

    async def is_first_launch(self) -> bool:
        """True if no PIN has been set up yet."""
        try:
            return await self._secrets.get_secret(StorageKey.PIN) is None
        except Exception:
            logger.exception("Error checking first launch")
            return True

    async def failed_attempts(self) -> int:
        try:
            return await self._read_int(StorageKey.FAILED_ATTEMPTS) or 0
        except Exception:
            logger.exception("Error reading failed attempts")
            return 0

    async def lockout_remaining_seconds(self) -> int | None:
        """Seconds left in the current lockout, or None when not locked out.

        Read-only: an elapsed lockout is left for ``verify`` to clear.
        """
        try:
            lockout_until = await self._read_int(StorageKey.LOCKOUT_UNTIL)
        except Exception:
            logger.exception("Error reading lockout state")
            return None
        if lockout_until is None:
            return None
        remaining_ms = lockout_until - self._clock()
        if remaining_ms <= 0:
            return None
        return math.ceil(remaining_ms / 1000)

    async def _read_int(self, key: StorageKey) -> int | None:
        raw = await self._preferences.get_string(key)
        if raw is None:
            return None
        value = _parse_int(raw)
        if value is None:
            raise PersistenceFailure(f"Stored {key} is not an integer: {raw!r}")
        return value
