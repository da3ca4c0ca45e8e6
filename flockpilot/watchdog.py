"""
FlockPilot Kill-Switch Watchdog -- stop the rover when velocity commands go quiet.

Every velocity-setting event (manual passthrough or autonomous tick) calls
:meth:`KillSwitchWatchdog.arm_or_retrigger`.  If nothing does so for the
full timeout, the stop callback runs exactly once.  Expiry does not re-arm
the watchdog; the next real command does.

Config format::

    watchdog:
      enabled: true
      timeout_s: 10.0          # kill_switch_timeout
      poll_interval_s: 0.1     # monitor thread resolution
"""

import logging
import threading
import time

logger = logging.getLogger("FlockPilot.Watchdog")


class KillSwitchWatchdog:
    """Retriggerable one-shot timer that zeroes velocity on input silence."""

    def __init__(self, config: dict, stop_fn=None, clock=None):
        """Initialize the watchdog.

        Args:
            config: Full FlockPilot config dict.
            stop_fn: Callable invoked on expiry (typically emits a zero
                     velocity command without re-arming).
            clock: Zero-argument callable returning seconds.  Defaults to
                   ``time.monotonic``; a simulation passes its own clock.
        """
        wd_cfg = config.get("watchdog", {})
        self.enabled = wd_cfg.get("enabled", True)
        self.timeout = float(wd_cfg.get("timeout_s", 10.0))
        self.poll_interval = float(wd_cfg.get("poll_interval_s", 0.1))

        self._stop_fn = stop_fn
        self._clock = clock
        self._last_armed = self._now()
        self._armed = False
        self._expired = False
        self._expiry_count = 0
        self._running = False
        self._thread = None
        self._lock = threading.Lock()

        if self.enabled:
            logger.info(f"Kill switch active: {self.timeout}s timeout")

    def _now(self) -> float:
        return self._clock() if self._clock else time.monotonic()

    def arm_or_retrigger(self):
        """Restart the countdown.  Call on every velocity-setting event."""
        with self._lock:
            self._last_armed = self._now()
            self._armed = True
            if self._expired:
                self._expired = False
                logger.info("Kill switch: velocity commands resumed")

    def check(self) -> bool:
        """Fire the stop callback if the timeout has elapsed.  Returns True if it fired."""
        if not self.enabled:
            return False
        with self._lock:
            if not self._armed:
                return False
            elapsed = self._now() - self._last_armed
            if elapsed < self.timeout:
                return False
            self._armed = False
            self._expired = True
            self._expiry_count += 1

        logger.critical(
            f"KILL SWITCH: no velocity command for {elapsed:.1f}s "
            f"(timeout: {self.timeout}s) -- stopping the rover"
        )
        if self._stop_fn:
            try:
                self._stop_fn()
            except Exception as exc:
                logger.error(f"Kill switch stop failed: {exc}")
        return True

    def start(self):
        """Arm the watchdog and start the monitor thread."""
        if not self.enabled:
            return

        self.arm_or_retrigger()
        self._running = True
        self._thread = threading.Thread(
            target=self._monitor_loop, daemon=True, name="kill-switch"
        )
        self._thread.start()

    def stop(self):
        """Stop the monitor thread."""
        self._running = False
        if self._thread:
            self._thread.join(timeout=2)

    def _monitor_loop(self):
        while self._running:
            self.check()
            time.sleep(self.poll_interval)

    @property
    def is_expired(self) -> bool:
        """True if the watchdog has fired and no command has arrived since."""
        with self._lock:
            return self._expired

    @property
    def expiry_count(self) -> int:
        with self._lock:
            return self._expiry_count

    def get_status(self) -> dict:
        """Return watchdog status for telemetry."""
        with self._lock:
            elapsed = self._now() - self._last_armed
            return {
                "enabled": self.enabled,
                "timeout_s": self.timeout,
                "armed": self._armed,
                "last_command_s_ago": round(elapsed, 1),
                "expired": self._expired,
                "expiry_count": self._expiry_count,
            }
