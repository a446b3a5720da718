"""
ChainTrace: Flask entrypoint
"""

import atexit
import logging
import sys
from dataclasses import dataclass

from flask import Flask

from src.api.routes import bp as api_bp
from src.config import AppConfig, load_config
from src.kernel.blockchain import Ledger
from src.kernel.runner import LedgerRunner
from src.kernel.supply_chain import SupplyChain

log = logging.getLogger(__name__)


@dataclass
class AppState:
    config: AppConfig
    ledger: Ledger
    supply_chain: SupplyChain
    runner: LedgerRunner

    def close(self):
        atexit.unregister(self.close)
        self.runner.stop()


def create_app(config: AppConfig = None) -> Flask:
    config = config or load_config()

    ledger = Ledger(algorithm=config.hash_algorithm, genesis_message=config.genesis_message)
    runner = LedgerRunner().start()
    try:
        runner.run(ledger.init())
    except Exception:
        runner.stop()
        raise

    app = Flask(__name__)
    app.config["DEBUG"] = config.debug
    state = AppState(config, ledger, SupplyChain(ledger), runner)
    atexit.register(state.close)
    app.extensions["chaintrace"] = state
    app.register_blueprint(api_bp)
    return app


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    config = load_config()
    if "--port" in argv:
        try:
            i = argv.index("--port")
            config = config.with_overrides(port=int(argv[i + 1]))
        except (IndexError, ValueError):
            log.warning("ignoring invalid --port argument")

    logging.basicConfig(
        level=config.log_level_value,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = create_app(config)
    log.info("[ChainTrace] running at http://%s:%d", config.host, config.port)
    app.run(host=config.host, port=config.port, debug=False)


if __name__ == "__main__":
    main()
