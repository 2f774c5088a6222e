import asyncio
import logging
import signal as sys_signal
import sys

from pydantic import ValidationError

from .batch import BatchRunner
from .config import Config
from .errors import TargetLoadError, WalletLoadError
from .log import setup_logging, success
from .rpc import OctraRpc
from .scheduler import Scheduler
from .wallet import load_targets, load_wallet

logger = logging.getLogger(__name__)


def _install_signal_handlers(loop, stop_event):
    for sig in (sys_signal.SIGINT, sys_signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except (NotImplementedError, RuntimeError):
            # Windows event loops have no add_signal_handler
            sys_signal.signal(sig, lambda *_: loop.call_soon_threadsafe(stop_event.set))


async def main(config=None):
    """Load wallet and targets, then run batches until stopped. Returns the exit status."""
    if config is None:
        try:
            config = Config()
        except ValidationError as e:
            logger.error(f"Invalid configuration: {e}")
            return 1

    try:
        wallet = load_wallet(config.wallet_file)
        success(logger, f"Wallet loaded: {wallet.addr}")
        targets = load_targets(config.targets_file)
        logger.info(f"Loaded {len(targets)} targets from '{config.targets_file}'")
    except WalletLoadError as e:
        logger.error(f"Failed to load wallet: {e}")
        return 1
    except TargetLoadError as e:
        logger.error(f"Failed to load targets: {e}")
        return 1

    logger.debug(f"Config: {len(targets)} tx/batch @ {config.amount_per_tx} OCT, every {config.interval_between_batches / 3600:g}h")

    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()
    exit_code = 0

    def on_loop_error(loop, context):
        nonlocal exit_code
        err = context.get("exception")
        logger.error(f"Unhandled error: {err or context.get('message')}")
        exit_code = 1
        stop_event.set()

    loop.set_exception_handler(on_loop_error)
    _install_signal_handlers(loop, stop_event)

    rpc = OctraRpc(wallet, timeout=config.request_timeout)
    runner = BatchRunner(wallet, rpc, config)
    scheduler = Scheduler(runner, load_targets, config, stop_event=stop_event)
    try:
        await scheduler.run()
    finally:
        await wallet.close()
    return exit_code


def run():
    setup_logging()
    try:
        code = asyncio.run(main())
    except KeyboardInterrupt:
        logger.warning("Exiting gracefully...")
        code = 0
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        code = 1
    sys.exit(code)
