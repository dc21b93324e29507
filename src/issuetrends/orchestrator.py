"""Backend selection, retry with backoff and sticky quota fallback."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import TYPE_CHECKING

from .exceptions import (
    GenerationExhausted,
    ProviderUnavailable,
    QuotaExceeded,
    TransientBackendError,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from .backends import ChatBackend
    from .models import GenerationResult

logger = logging.getLogger(__name__)


class BackendState(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"


class _BackendRetired(Exception):
    """The backend a call started on was retired while the call was retrying."""


class ProviderOrchestrator:
    """Run generation calls against the active backend.

    The orchestrator is a two-state machine. It starts in ``PRIMARY`` when a
    primary backend is configured and moves to ``SECONDARY`` the first time
    the primary reports quota exhaustion. The move is one-way: no later call
    made through this instance reaches the primary again, including calls
    that were already retrying on it when the switch happened.

    Each call gets ``max_attempts`` attempts on a backend. Before attempt
    ``k`` (``k > 1``) it waits ``base_delay_sec * 2 ** (k - 2)`` seconds.
    Quota errors are never retried on the same backend.
    """

    def __init__(
        self,
        primary: ChatBackend | None,
        secondary: ChatBackend | None,
        max_attempts: int = 3,
        base_delay_sec: float = 2.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if primary is None and secondary is None:
            raise ProviderUnavailable(
                "No generative backend configured. Set GEMINI_API_KEY or OPENAI_API_KEY."
            )
        self.primary = primary
        self.secondary = secondary
        self.max_attempts = max(1, max_attempts)
        self.base_delay_sec = base_delay_sec
        self._sleep = sleep
        self.state = self._initial_state()

    def _initial_state(self) -> BackendState:
        if self.primary is not None:
            return BackendState.PRIMARY
        return BackendState.SECONDARY

    def reset(self) -> None:
        """Forget a fallback from an earlier run."""
        self.state = self._initial_state()

    async def aclose(self) -> None:
        for backend in (self.primary, self.secondary):
            if backend is not None:
                await backend.aclose()

    @property
    def active_backend(self) -> ChatBackend:
        if self.state is BackendState.PRIMARY and self.primary is not None:
            return self.primary
        assert self.secondary is not None
        return self.secondary

    def fall_back(self, reason: Exception | None = None) -> bool:
        """Switch to the secondary backend. Returns False if already switched."""
        if self.state is BackendState.SECONDARY:
            return False
        if self.secondary is None:
            raise ProviderUnavailable("No secondary backend configured for fallback")
        self.state = BackendState.SECONDARY
        logger.warning(
            "Falling back from %s to %s for the rest of the run: %s",
            self.primary.name if self.primary else "-",
            self.secondary.name,
            reason,
        )
        return True

    async def generate(self, prompt: str) -> GenerationResult:
        if self.state is BackendState.PRIMARY:
            assert self.primary is not None
            try:
                return await self._generate_with_retry(self.primary, prompt)
            except QuotaExceeded as exc:
                if self.secondary is None:
                    raise GenerationExhausted(
                        f"{self.primary.name} quota exceeded and no fallback backend"
                    ) from exc
                self.fall_back(exc)
            except _BackendRetired:
                logger.info(
                    "Call on %s redirected to %s after fallback",
                    self.primary.name,
                    self.active_backend.name,
                )

        backend = self.active_backend
        try:
            return await self._generate_with_retry(backend, prompt)
        except QuotaExceeded as exc:
            raise GenerationExhausted(
                f"{backend.name} quota exceeded on fallback backend"
            ) from exc

    async def _generate_with_retry(
        self, backend: ChatBackend, prompt: str
    ) -> GenerationResult:
        last_error: TransientBackendError | None = None

        for attempt in range(self.max_attempts):
            if attempt > 0:
                wait_sec = self.base_delay_sec * (2 ** (attempt - 1))
                logger.warning(
                    "Retrying %s after %.1fs (attempt %d/%d)",
                    backend.name,
                    wait_sec,
                    attempt + 1,
                    self.max_attempts,
                )
                await self._sleep(wait_sec)

            if backend is self.primary and self.state is BackendState.SECONDARY:
                raise _BackendRetired()

            try:
                result = await backend.generate(prompt)
            except TransientBackendError as exc:
                last_error = exc
                logger.error(
                    "%s error (attempt %d/%d): %s",
                    backend.name,
                    attempt + 1,
                    self.max_attempts,
                    exc,
                )
                continue

            return result

        raise GenerationExhausted(
            f"{backend.name} failed after {self.max_attempts} attempts"
        ) from last_error
