from __future__ import annotations

import logging

from .storage import KeyValueStorage

logger = logging.getLogger(__name__)

ONBOARDING_KEY = "has_completed_onboarding"


class OnboardingFlag:
    """The persisted "has completed onboarding" switch that picks the first screen."""

    def __init__(self, storage: KeyValueStorage, key: str = ONBOARDING_KEY) -> None:
        self.storage = storage
        self.key = key

    def is_complete(self) -> bool:
        try:
            return self.storage.get(self.key) is True
        except (OSError, ValueError) as e:
            logger.warning("Could not read %r: %s", self.key, e)
            return False

    def _write(self, value: bool) -> bool:
        try:
            self.storage.set(self.key, value)
        except OSError as e:
            logger.error("Could not write %r: %s", self.key, e)
            return False
        return True

    def complete(self) -> bool:
        return self._write(True)

    def reset(self) -> bool:
        return self._write(False)
