import asyncio
import logging
from datetime import datetime, timedelta

from .errors import TargetLoadError

logger = logging.getLogger(__name__)


class Scheduler:
    """Runs a batch, waits the configured interval, repeats until stopped."""

    def __init__(self, runner, load_targets, config, stop_event=None, max_batches=None):
        self.runner = runner
        self.load_targets = load_targets
        self.config = config
        self.stop_event = stop_event or asyncio.Event()
        self.max_batches = max_batches
        self.results = []

    def stop(self):
        self.stop_event.set()

    async def wait_interval(self, seconds):
        """Sleep ``seconds`` or until stopped. Returns True when stopped."""
        try:
            await asyncio.wait_for(self.stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return False
        return True

    async def run(self):
        batch_index = 1
        while not self.stop_event.is_set():
            try:
                targets = self.load_targets(self.config.targets_file)
            except TargetLoadError as e:
                logger.error(f"Failed to load targets: {e}. Skipping batch #{batch_index}.")
            else:
                self.results.append(await self.runner.run(batch_index, targets))

            if self.max_batches is not None and batch_index >= self.max_batches:
                break
            batch_index += 1

            interval = self.config.interval_between_batches
            next_run = datetime.now() + timedelta(seconds=interval)
            logger.info(f"Next batch in {interval / 3600:g} hours ({next_run.strftime('%Y-%m-%d %H:%M:%S')})...")
            if await self.wait_interval(interval):
                break

        logger.info("Scheduler stopped")
        return self.results
