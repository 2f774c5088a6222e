import json
import logging
import os
import re
import ssl

import aiohttp

from .config import DEFAULT_RPC
from .crypto import decode_seed, signing_key
from .errors import InvalidKeyMaterial, TargetLoadError, WalletLoadError

logger = logging.getLogger(__name__)

b58 = re.compile(r"^oct[1-9A-HJ-NP-Za-km-z]{44}$")


class Wallet:
    def __init__(self, priv, addr, rpc=DEFAULT_RPC, name=None, proxy=None):
        self.priv = priv
        self.seed = decode_seed(priv)
        self.addr = addr
        self.rpc = rpc.rstrip('/')
        self.name = name if name else addr[:8]
        self.proxy = proxy
        self.sk = signing_key(self.seed)
        self.pub = self.sk.verify_key.encode()
        self.aiohttp_session = None

    def __repr__(self):
        return f"Wallet(name={self.name!r}, addr={self.addr!r}, rpc={self.rpc!r})"

    async def get_or_create_session(self, timeout=30):
        if self.aiohttp_session and not self.aiohttp_session.closed:
            return self.aiohttp_session

        connector = aiohttp.TCPConnector(ssl=ssl.create_default_context(), force_close=True)
        self.aiohttp_session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=timeout),
            connector=connector,
            json_serialize=json.dumps
        )
        return self.aiohttp_session

    async def close(self):
        if self.aiohttp_session and not self.aiohttp_session.closed:
            await self.aiohttp_session.close()
        self.aiohttp_session = None


def _wallet_from_entry(entry, default_name):
    priv = entry.get('priv')
    addr = entry.get('addr')
    if not priv or not addr:
        raise WalletLoadError("wallet entry is missing 'priv' or 'addr'")
    rpc_url = entry.get('rpc') or DEFAULT_RPC
    try:
        wallet = Wallet(priv, addr, rpc_url, name=entry.get('name', default_name), proxy=entry.get('proxy'))
    except InvalidKeyMaterial as e:
        raise WalletLoadError(f"invalid private key for {addr}: {e}")
    if not rpc_url.startswith('https://') and 'localhost' not in rpc_url:
        logger.warning(f"Wallet '{wallet.name}' using insecure HTTP connection for RPC: {rpc_url}")
    return wallet


def load_wallet(path):
    """Read the wallet file. A list of wallets is accepted; the first entry is used."""
    if not os.path.exists(path):
        raise WalletLoadError(f"'{path}' not found")
    try:
        with open(path, 'r') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise WalletLoadError(f"invalid JSON in '{path}': {e}")
    except OSError as e:
        raise WalletLoadError(f"cannot read '{path}': {e}")

    if isinstance(data, list):
        if not data:
            raise WalletLoadError(f"'{path}' contains an empty wallet list")
        if len(data) > 1:
            logger.warning(f"'{path}' lists {len(data)} wallets, using the first one")
        data = data[0]
    if not isinstance(data, dict):
        raise WalletLoadError(f"'{path}' must hold a wallet object or a list of them")
    return _wallet_from_entry(data, "Wallet 1")


def load_targets(path):
    """Read newline-delimited recipient addresses, skipping invalid ones."""
    if not os.path.exists(path):
        raise TargetLoadError(f"'{path}' not found")

    targets = []
    try:
        with open(path, 'r') as f:
            for line in f:
                addr_read = line.strip()
                if b58.match(addr_read):
                    targets.append(addr_read)
                elif addr_read:
                    logger.warning(f"Invalid address '{addr_read[:20]}...' in '{path}'. Skipping.")
    except OSError as e:
        raise TargetLoadError(f"cannot read '{path}': {e}")

    if not targets:
        raise TargetLoadError(f"no valid recipient addresses in '{path}'")
    return targets
