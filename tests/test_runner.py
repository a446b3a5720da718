import threading

import pytest
from src.kernel.blockchain import Ledger
from src.kernel.runner import LedgerRunner


def test_runner_serializes_calls_from_threads():
    runner = LedgerRunner().start()
    try:
        ledger = Ledger()
        runner.run(ledger.init())

        def worker(n):
            for i in range(5):
                runner.run(ledger.append({"worker": n, "i": i}))

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(ledger.chain) == 21
        assert runner.run(ledger.is_chain_valid())
    finally:
        runner.stop()
    assert not runner.running


def test_run_requires_started_runner():
    runner = LedgerRunner()
    with pytest.raises(RuntimeError):
        runner.run(Ledger().init())
    runner.stop()
