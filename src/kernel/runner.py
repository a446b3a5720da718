import asyncio
import threading


class LedgerRunner:
    """
    Owns one event loop on a daemon thread.
    Synchronous callers (the web layer) hand coroutines to it and block on the
    result, so every ledger call is queued onto the same loop.
    """
    def __init__(self, name="ledger-loop"):
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)

    def _run(self):
        asyncio.set_event_loop(self._loop)
        self._loop.run_forever()

    @property
    def running(self) -> bool:
        return self._thread.is_alive()

    def start(self):
        if not self._thread.is_alive():
            self._thread.start()
        return self

    def run(self, coro, timeout=None):
        if not self.running:
            coro.close()
            raise RuntimeError("ledger runner is not started")
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        return future.result(timeout)

    def stop(self):
        if self._loop.is_closed():
            return
        if self.running:
            self._loop.call_soon_threadsafe(self._loop.stop)
            self._thread.join()
        self._loop.close()
