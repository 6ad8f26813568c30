# storefront/utils/single_flight.py
import threading
from typing import Any, Callable, Dict

from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class _Call:
    def __init__(self):
        self.done = threading.Event()
        self.result: Any = None
        self.error: BaseException | None = None


class SingleFlight:
    """
    At most one in-flight call per key.
    Callers arriving while a call is running wait for it and share its
    outcome (result or exception) instead of starting a second one.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._calls: Dict[str, _Call] = {}

    def in_flight(self, key: str) -> bool:
        with self._lock:
            return key in self._calls

    def do(self, key: str, fn: Callable[[], Any]) -> Any:
        with self._lock:
            call = self._calls.get(key)
            leader = call is None
            if leader:
                call = _Call()
                self._calls[key] = call

        if not leader:
            logger.info(f"Joining in-flight call {key}")
            call.done.wait()
            if call.error is not None:
                raise call.error
            return call.result

        try:
            call.result = fn()
        except BaseException as e:
            call.error = e
            raise
        finally:
            with self._lock:
                del self._calls[key]
            call.done.set()

        return call.result
