"""Rate limiting for interstitial ads."""

import logging
import math

from kidsguard_shared import StorageKey

from .bridges import AdDelivery
from .clock import Clock, now_ms
from .storage import KeyValueStore

logger = logging.getLogger(__name__)

HOUR_MS = 60 * 60 * 1000


class AdEligibilityGate:
    """A one-shot event allowed at most once per interval (6 hours by default).

    The gate never assumes the event happened: callers record it only after
    delivery confirms success.
    """

    def __init__(
        self,
        preferences: KeyValueStore,
        clock: Clock = now_ms,
        min_interval_hours: float = 6,
    ):
        self._preferences = preferences
        self._clock = clock
        self._interval_ms = int(min_interval_hours * HOUR_MS)

    async def last_fired_ms(self) -> int | None:
        raw = await self._preferences.get_string(StorageKey.LAST_AD_SHOWN)
        if raw is None:
            return None
        return int(raw)

    async def can_fire(self) -> bool:
        try:
            last_fired = await self.last_fired_ms()
        except Exception:
            logger.exception("Error checking ad eligibility")
            return False

        if last_fired is None:
            logger.debug("No previous ad shown, eligible to show")
            return True

        elapsed = self._clock() - last_fired
        if elapsed >= self._interval_ms:
            logger.debug("Eligible to show ad (%.2f hours elapsed)", elapsed / HOUR_MS)
            return True

        remaining_minutes = math.ceil((self._interval_ms - elapsed) / 60_000)
        logger.debug("Too soon to show ad (%d minutes remaining)", remaining_minutes)
        return False

    async def record_fired(self) -> bool:
        try:
            await self._preferences.set_string(StorageKey.LAST_AD_SHOWN, str(self._clock()))
        except Exception:
            logger.exception("Error saving last ad shown time")
            return False
        logger.info("Recorded ad shown")
        return True


class AdPresenter:
    """Shows an ad on app-foreground and screen-focus events when allowed."""

    def __init__(self, gate: AdEligibilityGate, delivery: AdDelivery):
        self._gate = gate
        self._delivery = delivery
        self._showing = False

    @property
    def is_showing(self) -> bool:
        return self._showing

    async def show_if_eligible(self) -> bool:
        """Show an ad if the interval has passed.

        Returns True if an ad was shown.
        """
        if self._showing:
            logger.debug("Ad already showing")
            return False

        if not await self._gate.can_fire():
            return False

        self._showing = True
        try:
            shown = await self._delivery.show()
        except Exception:
            logger.exception("Error showing ad")
            return False
        finally:
            self._showing = False

        if shown:
            await self._gate.record_fired()
        return shown
