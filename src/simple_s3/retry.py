"""Retry of transient failures over the sign-and-send cycle."""

import io
import logging
import time
from typing import Callable, Iterable, Optional

from simple_s3.errors import S3TransientError
from simple_s3.transport import RawResponse, is_transient_status

logger = logging.getLogger(__name__)

DEFAULT_RETRY_DELAYS = (0, 1, 2)


class StreamRewinder:
    """Restores streamed bodies and sinks to their starting offset.

    A body that is not file-like is ignored. A stream that cannot seek
    cannot be replayed, so rewind() reports False for it. Sinks are also
    truncated so a retried download does not keep a partial body.
    """

    def __init__(self, body=None, sink=None):
        self._positions = []
        if hasattr(body, "read"):
            self._positions.append((body, self._tell(body), False))
        if sink is not None:
            self._positions.append((sink, self._tell(sink), True))

    @staticmethod
    def _tell(stream) -> Optional[int]:
        try:
            if stream.seekable():
                return stream.tell()
        except (AttributeError, OSError, io.UnsupportedOperation):
            pass
        return None

    def rewind(self) -> bool:
        for stream, position, is_sink in self._positions:
            if position is None:
                return False
            stream.seek(position)
            if is_sink:
                stream.truncate()
        return True


class RetryPolicy:
    """Re-runs an attempt on transient failure following a backoff schedule.

    Each element of `delays` is the wait in seconds before one more attempt,
    so a schedule of n delays allows n + 1 attempts. An empty schedule makes
    a single attempt.
    """

    def __init__(
        self,
        delays: Iterable[float] = DEFAULT_RETRY_DELAYS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.delays = tuple(delays)
        if any(delay < 0 for delay in self.delays):
            raise ValueError(f"Retry delays must be non-negative: {self.delays}")
        self.sleep = sleep

    def call(
        self,
        attempt: Callable[[int], RawResponse],
        rewind: Optional[Callable[[], bool]] = None,
    ) -> RawResponse:
        """Run `attempt` until it yields a non-transient response.

        Args:
            attempt: Signs and sends the request; receives the attempt number
            rewind: Prepares streams for another attempt, False if impossible

        Returns:
            The first non-transient response, or the last transient one
            once the schedule is exhausted

        Raises:
            S3TransientError: The last attempt produced no response
        """
        schedule = iter(self.delays)
        number = 1
        while True:
            failure = None
            try:
                raw = attempt(number)
            except S3TransientError as exc:
                raw, failure = None, exc
            else:
                if not is_transient_status(raw.status):
                    return raw

            delay = next(schedule, None)
            if delay is None or (rewind is not None and not rewind()):
                if failure is not None:
                    raise failure
                return raw

            logger.warning(
                "Transient S3 failure on attempt %d (%s), retrying in %ss",
                number,
                failure if failure is not None else f"status {raw.status}",
                delay,
            )
            self.sleep(delay)
            number += 1
