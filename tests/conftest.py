import base64
import os

import pytest
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from octra_autosend.config import Config
from octra_autosend.crypto import derive_encryption_key
from octra_autosend.rpc import RpcResult
from octra_autosend.wallet import Wallet

B58 = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
SEED = bytes(range(32))
PRIV = base64.b64encode(SEED).decode()


def make_addr(i):
    return "oct" + B58[i % len(B58)] * 44


WALLET_ADDR = make_addr(0)


def open_balance_blob(blob, priv_b64):
    raw = base64.b64decode(blob[3:])
    return int(AESGCM(derive_encryption_key(priv_b64)).decrypt(raw[:12], raw[12:], None))


class FixedRng:
    def __init__(self, value):
        self.value = value
        self.calls = 0

    def random(self):
        self.calls += 1
        return self.value


async def no_sleep(seconds):
    no_sleep.calls.append(seconds)


no_sleep.calls = []


class FakeRpc:
    """In-memory stand-in for OctraRpc with scripted replies."""

    def __init__(self, wallet, nonce=0, encrypted_raw=0, public_raw=0):
        self.wallet = wallet
        self.nonce = nonce
        self.nonce_fails = False
        self.encrypted_raw = encrypted_raw
        self.public_raw = public_raw
        self.balance_fails = False
        self.accounts = {}
        self.public_keys = {}
        self.pending = []
        self.pending_fails = False
        self.fail_claims = set()
        self.send_failures = set()
        self.private_fails = False
        self.encrypt_fails = False

        self.sent = []
        self.private_sent = []
        self.claimed = []
        self.claim_calls = []
        self.encrypt_calls = []

    def add_recipient(self, address, public_key=None):
        self.accounts[address] = {"has_public_key": public_key is not None, "nonce": 0}
        if public_key is not None:
            self.public_keys[address] = base64.b64encode(public_key).decode()

    async def get_account(self, address):
        if address == self.wallet.addr:
            if self.nonce_fails:
                return RpcResult.failure("connection refused")
            return RpcResult.success({"nonce": self.nonce, "balance": "10.0"})
        acct = self.accounts.get(address)
        if acct is None:
            return RpcResult.failure("HTTP 404 - not found", status=404)
        return RpcResult.success(acct)

    async def get_public_key(self, address):
        key = self.public_keys.get(address)
        if key is None:
            return RpcResult.failure("HTTP 404 - no public key", status=404)
        return RpcResult.success({"public_key": key})

    async def get_encrypted_balance(self):
        if self.balance_fails:
            return RpcResult.failure("timeout")
        return RpcResult.success({
            "encrypted_balance_raw": str(self.encrypted_raw),
            "public_balance_raw": str(self.public_raw),
        })

    async def encrypt_balance(self, amount_raw, encrypted_data):
        self.encrypt_calls.append((amount_raw, encrypted_data))
        if self.encrypt_fails:
            return RpcResult.failure("HTTP 400 - rejected", status=400)
        return RpcResult.success({"tx_hash": "enc"})

    async def private_transfer(self, to_addr, amount_raw, to_public_key):
        if self.private_fails:
            return RpcResult.failure("HTTP 500 - boom", status=500)
        self.private_sent.append((to_addr, amount_raw, to_public_key))
        return RpcResult.success({"tx_hash": f"ptx{len(self.private_sent)}"})

    async def get_pending_transfers(self):
        if self.pending_fails:
            return RpcResult.failure("HTTP 403 - forbidden", status=403)
        return RpcResult.success(list(self.pending))

    async def claim_private_transfer(self, transfer_id, retries=0):
        self.claim_calls.append(transfer_id)
        if transfer_id in self.fail_claims:
            return RpcResult.failure("HTTP 400 - already claimed", status=400)
        self.claimed.append(transfer_id)
        return RpcResult.success({"amount": "0.5 OCT", "tx_hash": f"claim{transfer_id}"})

    async def send_tx(self, tx, retries=0):
        self.sent.append(tx)
        if tx["nonce"] in self.send_failures:
            return RpcResult.failure("HTTP 400 - invalid nonce", status=400)
        return RpcResult.success(f"hash{tx['nonce']}")


@pytest.fixture
def wallet():
    return Wallet(PRIV, WALLET_ADDR, "http://node.test")


@pytest.fixture
def config():
    return Config(delay_between_tx=0, encrypt_settle_seconds=0, interval_between_batches=0)


@pytest.fixture
def fake_rpc(wallet):
    return FakeRpc(wallet)


@pytest.fixture(autouse=True)
def reset_sleep_calls():
    no_sleep.calls.clear()


@pytest.fixture(autouse=True)
def clean_octra_env(monkeypatch):
    for key in list(os.environ):
        if key.startswith("OCTRA_"):
            monkeypatch.delenv(key)
