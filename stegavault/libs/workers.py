# Pool acotado para los bucles de bits (CPU), fuera del event loop
import asyncio
import concurrent.futures
import logging
import threading
from typing import Any, Callable

from stegavault import config
from stegavault.libs.errors import BusyError

logger = logging.getLogger(__name__)


class StegoWorkerPool:
    """
    ThreadPoolExecutor con contrapresión: como mucho `max_workers + max_pending`
    operaciones en vuelo; el resto se rechaza de inmediato con BusyError.
    """

    def __init__(self, max_workers: int, max_pending: int):
        self.max_workers = max_workers
        self.max_pending = max_pending
        self._executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="stego"
        )
        self._slots = threading.BoundedSemaphore(max_workers + max_pending)
        self._closed = False

    async def run(self, fn: Callable[..., Any], *args) -> Any:
        if self._closed:
            raise BusyError("Server is shutting down.")
        if not self._slots.acquire(blocking=False):
            logger.warning("Worker pool saturated (%s in flight)", self.max_workers + self.max_pending)
            raise BusyError("Server busy, try again later.")

        try:
            future = self._executor.submit(fn, *args)
        except BaseException:
            self._slots.release()
            raise
        # El slot se libera cuando el hilo termina, aunque el llamador ya no espere
        future.add_done_callback(lambda _: self._slots.release())
        return await asyncio.wrap_future(future)

    def shutdown(self, wait: bool = False) -> None:
        """Deja de aceptar trabajos; los que ya corren terminan en sus hilos"""
        self._closed = True
        self._executor.shutdown(wait=wait)
        logger.info("Worker pool shut down")


# Pool compartido por todos los routers
pool = StegoWorkerPool(config.STEGO_WORKERS, config.STEGO_MAX_PENDING)
