import base64
import logging
import random

from .crypto import amount_to_micro
from .log import success

logger = logging.getLogger(__name__)

PUBLIC_KEY_SIZE = 32


class PrivateTransferGate:
    """Chooses per recipient between a private transfer and the public fallback.

    ``try_private`` returns True only when a private transfer was accepted. The
    caller must send publicly on False; no failure here is terminal for the
    recipient.
    """

    def __init__(self, rpc, oracle, config, rng=None):
        self.rpc = rpc
        self.oracle = oracle
        self.config = config
        self.rng = rng or random.Random()
        self.amount_raw = amount_to_micro(config.amount_per_tx)

    async def eligible_key(self, recipient, snapshot):
        """Recipient public key when every precondition holds, else None."""
        if snapshot.encrypted_raw < self.amount_raw:
            return None
        if self.rng.random() >= self.config.private_probability:
            return None
        if not await self.oracle.has_public_key(recipient):
            logger.debug(f"    {recipient[:20]} has no public key, sending publicly")
            return None
        key = await self.oracle.get_public_key(recipient)
        if key is None or len(key) != PUBLIC_KEY_SIZE:
            logger.debug(f"    {recipient[:20]} public key unusable, sending publicly")
            return None
        return key

    async def try_private(self, recipient, snapshot):
        key = await self.eligible_key(recipient, snapshot)
        if key is None:
            return False

        result = await self.rpc.private_transfer(recipient, self.amount_raw, base64.b64encode(key).decode())
        if not result.ok:
            logger.warning(f"    Private transfer to {recipient[:20]} failed: {result.error}. Falling back to public.")
            return False

        snapshot.encrypted_raw -= self.amount_raw
        tx_hash = result.data.get('tx_hash', 'unknown') if isinstance(result.data, dict) else 'unknown'
        success(logger, f"    Private transfer of {self.config.amount_per_tx} OCT to {recipient} submitted (Tx: {tx_hash})")
        return True
