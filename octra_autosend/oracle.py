import base64
import binascii
import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class BalanceSnapshot:
    encrypted_raw: int = 0
    public_raw: int = 0


def _raw(value):
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


class BalanceOracle:
    """Best-effort account reads; failures log and fall back to a safe default."""

    def __init__(self, rpc):
        self.rpc = rpc

    async def get_nonce(self, address):
        result = await self.rpc.get_account(address)
        if not result.ok:
            # NOTE: restarting from 0 can collide with nonces already on chain
            logger.error(f"Failed to get nonce: {result.error}")
            return 0
        if not isinstance(result.data, dict):
            logger.error(f"Failed to get nonce: unexpected reply {result.text[:60]!r}")
            return 0
        return _raw(result.data.get('nonce'))

    async def get_balances(self):
        result = await self.rpc.get_encrypted_balance()
        if not result.ok or not isinstance(result.data, dict):
            logger.warning(f"Failed to get encrypted balance: {result.error}")
            return BalanceSnapshot()
        j = result.data
        return BalanceSnapshot(
            encrypted_raw=_raw(j.get("encrypted_balance_raw")),
            public_raw=_raw(j.get("public_balance_raw")),
        )

    async def has_public_key(self, address):
        result = await self.rpc.get_account(address)
        if not result.ok or not isinstance(result.data, dict):
            logger.debug(f"Account lookup failed for {address[:20]}: {result.error}")
            return False
        return bool(result.data.get("has_public_key"))

    async def get_public_key(self, address):
        result = await self.rpc.get_public_key(address)
        if not result.ok or not isinstance(result.data, dict):
            logger.debug(f"Public key lookup failed for {address[:20]}: {result.error}")
            return None
        key_b64 = result.data.get("public_key")
        if not key_b64:
            return None
        try:
            return base64.b64decode(key_b64, validate=True)
        except (binascii.Error, ValueError):
            logger.debug(f"Public key for {address[:20]} is not valid base64")
            return None
