import asyncio
import logging

from .config import μ
from .crypto import amount_to_micro, encrypt_client_balance
from .log import success

logger = logging.getLogger(__name__)


class AutoEncryptor:
    """One-shot top-up of the encrypted balance before a batch."""

    def __init__(self, rpc, config, sleep=asyncio.sleep):
        self.rpc = rpc
        self.config = config
        self.sleep = sleep

    async def ensure_funded(self, snapshot):
        min_raw = amount_to_micro(self.config.amount_per_tx)
        buffer_raw = self.config.encrypt_buffer_raw

        if snapshot.encrypted_raw >= min_raw:
            logger.info(f"Encrypted balance {snapshot.encrypted_raw / μ:.6f} OCT covers private transfers")
            return True

        if snapshot.public_raw < min_raw + buffer_raw:
            logger.warning(
                f"Public balance {snapshot.public_raw / μ:.6f} OCT too low to encrypt "
                f"{min_raw / μ:.6f} OCT (+{buffer_raw / μ:.6f} buffer); private transfers disabled this batch"
            )
            return False

        wallet = self.rpc.wallet
        encrypted_data = encrypt_client_balance(snapshot.encrypted_raw + min_raw, wallet.priv)
        result = await self.rpc.encrypt_balance(min_raw, encrypted_data)
        if not result.ok:
            logger.error(f"Encrypt balance failed: {result.error}")
            return False

        success(logger, f"Encrypted {min_raw / μ:.6f} OCT, waiting {self.config.encrypt_settle_seconds:.0f}s to settle")
        await self.sleep(self.config.encrypt_settle_seconds)
        snapshot.encrypted_raw += min_raw
        snapshot.public_raw -= min_raw
        return True
