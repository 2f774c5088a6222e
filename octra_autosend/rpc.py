"""aiohttp client for the Octra node RPC.

Calls never raise into the caller: every transport error, timeout or non-200
reply comes back as a failed :class:`RpcResult` and the caller decides whether
to degrade or skip.
"""

import asyncio
import json
import logging
import random
from dataclasses import dataclass
from typing import Any, Optional

import aiohttp

logger = logging.getLogger(__name__)


@dataclass
class RpcResult:
    ok: bool
    status: int = 0
    data: Any = None
    text: str = ""
    error: Optional[str] = None

    @classmethod
    def success(cls, data, status=200, text=""):
        return cls(True, status, data, text)

    @classmethod
    def failure(cls, error, status=0, data=None, text=""):
        return cls(False, status, data, text, error)


def _error_from(status, text, j):
    if isinstance(j, dict) and j.get("error"):
        return f"HTTP {status} - {j['error']}"
    if isinstance(j, dict) and j.get("message"):
        return f"HTTP {status} - {j['message']}"
    return f"HTTP {status} - {text[:100]}"


class OctraRpc:
    def __init__(self, wallet, timeout=30, retry_delay=(1, 3)):
        self.wallet = wallet
        self.timeout = timeout
        self.retry_delay = retry_delay

    async def req(self, m, p, d=None, headers=None):
        session = await self.wallet.get_or_create_session(self.timeout)
        url = f"{self.wallet.rpc}{p}"
        kwargs = {}
        if m == 'POST' and d is not None:
            kwargs['json'] = d
        if headers:
            kwargs['headers'] = headers
        if self.wallet.proxy:
            kwargs['proxy'] = self.wallet.proxy

        try:
            async with session.request(m, url, **kwargs) as resp:
                text = await resp.text()
                try:
                    j = json.loads(text) if text.strip() else None
                except ValueError:
                    j = None

                if resp.status == 200:
                    return RpcResult.success(j, resp.status, text)
                return RpcResult.failure(_error_from(resp.status, text, j), resp.status, j, text)
        except asyncio.TimeoutError:
            return RpcResult.failure("timeout")
        except (aiohttp.ClientError, OSError, ValueError) as e:
            return RpcResult.failure(str(e) or type(e).__name__)

    async def req_private(self, path, method='GET', data=None):
        headers = {"X-Private-Key": self.wallet.priv}
        return await self.req(method, path, data, headers=headers)

    async def _with_retries(self, what, call, retries):
        result = None
        for attempt in range(retries + 1):
            result = await call()
            if result.ok:
                return result
            if attempt < retries:
                logger.warning(f"    Retry {attempt+1}/{retries}: {what} failed! Error: {str(result.error)[:70]}. Retrying...")
                await asyncio.sleep(random.uniform(*self.retry_delay))
        return result

    async def get_account(self, address):
        return await self.req('GET', f'/balance/{address}')

    async def get_public_key(self, address):
        return await self.req('GET', f'/public_key/{address}')

    async def get_encrypted_balance(self):
        return await self.req_private(f"/view_encrypted_balance/{self.wallet.addr}")

    async def encrypt_balance(self, amount_raw, encrypted_data):
        data = {
            "address": self.wallet.addr,
            "amount": str(int(amount_raw)),
            "private_key": self.wallet.priv,
            "encrypted_data": encrypted_data
        }
        return await self.req('POST', '/encrypt_balance', data)

    async def private_transfer(self, to_addr, amount_raw, to_public_key):
        data = {
            "from": self.wallet.addr,
            "to": to_addr,
            "amount": str(int(amount_raw)),
            "from_private_key": self.wallet.priv,
            "to_public_key": to_public_key
        }
        return await self.req('POST', '/private_transfer', data)

    async def get_pending_transfers(self):
        result = await self.req_private(f"/pending_private_transfers?address={self.wallet.addr}")
        if not result.ok:
            return result
        transfers = result.data.get("pending_transfers", []) if isinstance(result.data, dict) else []
        return RpcResult.success(transfers, result.status, result.text)

    async def claim_private_transfer(self, transfer_id, retries=0):
        data = {
            "recipient_address": self.wallet.addr,
            "private_key": self.wallet.priv,
            "transfer_id": transfer_id
        }
        return await self._with_retries("Claim", lambda: self.req('POST', '/claim_private_transfer', data), retries)

    async def _send_once(self, tx):
        result = await self.req('POST', '/send-tx', tx)
        if not result.ok:
            return result
        j, t = result.data, result.text
        if isinstance(j, dict) and j.get('status') == 'accepted':
            return RpcResult.success(j.get('tx_hash', ''), result.status, t)
        if t.lower().startswith('ok'):
            return RpcResult.success(t.split()[-1], result.status, t)
        return RpcResult.failure(json.dumps(j) if j else t, result.status, j, t)

    async def send_tx(self, tx, retries=0):
        """POST a signed transaction. ``data`` of a successful result is the tx hash."""
        return await self._with_retries("Transaction", lambda: self._send_once(tx), retries)
