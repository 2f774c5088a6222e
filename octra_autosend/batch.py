import asyncio
import logging
from dataclasses import dataclass, field
from typing import List

from .config import μ
from .crypto import decrypt_private_amount, derive_shared_secret
from .errors import InvalidKeyMaterial
from .funding import AutoEncryptor
from .gate import PrivateTransferGate
from .log import success
from .oracle import BalanceOracle
from .tx import build_transaction

logger = logging.getLogger(__name__)


class NonceCounter:
    """Per-batch nonce sequence; ``next()`` increments before handing out."""

    def __init__(self, start):
        self.current = int(start)

    def next(self):
        self.current += 1
        return self.current


@dataclass
class BatchResult:
    batch_index: int
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    private: int = 0
    public: int = 0
    claimed: int = 0
    funded: bool = False
    sent_nonces: List[int] = field(default_factory=list)


class BatchRunner:
    def __init__(self, wallet, rpc, config, rng=None, sleep=asyncio.sleep):
        self.wallet = wallet
        self.rpc = rpc
        self.config = config
        self.sleep = sleep
        self.oracle = BalanceOracle(rpc)
        self.gate = PrivateTransferGate(rpc, self.oracle, config, rng=rng)
        self.encryptor = AutoEncryptor(rpc, config, sleep=sleep)

    def _pending_amount(self, transfer):
        if not (transfer.get('encrypted_data') and transfer.get('ephemeral_key')):
            return "[encrypted]"
        try:
            shared = derive_shared_secret(self.wallet.priv, transfer['ephemeral_key'])
        except (InvalidKeyMaterial, ValueError):
            return "[encrypted]"
        amt = decrypt_private_amount(transfer['encrypted_data'], shared)
        return f"{amt / μ:.6f} OCT" if amt else "[encrypted]"

    async def claim_pending(self):
        result = await self.rpc.get_pending_transfers()
        if not result.ok:
            logger.warning(f"Could not load pending private transfers: {result.error}")
            return 0
        transfers = result.data or []
        if not transfers:
            logger.info("No pending private transfers to claim")
            return 0

        logger.info(f"Found {len(transfers)} claimable transfers")
        claimed = 0
        for t in transfers:
            if not isinstance(t, dict):
                logger.warning(f"  Skipping malformed pending transfer entry: {str(t)[:40]}")
                continue
            transfer_id = t.get('id')
            sender = str(t.get('sender', '?'))[:20]
            if transfer_id is None:
                logger.warning(f"  Skipping pending transfer from {sender} without an id")
                continue
            r = await self.rpc.claim_private_transfer(transfer_id, retries=self.config.send_retries)
            if r.ok:
                claimed += 1
                amount = r.data.get('amount') if isinstance(r.data, dict) else None
                success(logger, f"  Claimed #{transfer_id} from {sender} ({amount or self._pending_amount(t)})")
            else:
                logger.error(f"  Claim #{transfer_id} from {sender} failed: {r.error}")
        return claimed

    def _format_tx_log(self, index, to, tx_hash):
        return f"#{index:02d} | Amount: {self.config.amount_per_tx} OCT | To: {to} | Hash: {self.config.explorer_url}{tx_hash}"

    async def send_public(self, index, recipient, nonce):
        tx, _ = build_transaction(self.wallet.addr, recipient, self.config.amount_per_tx, nonce, self.wallet.seed)
        result = await self.rpc.send_tx(tx, retries=self.config.send_retries)
        if result.ok:
            success(logger, self._format_tx_log(index, recipient, result.data))
            return True
        logger.error(f"Transaction #{index} failed to {recipient} (Nonce: {nonce}): {str(result.error)[:70]}")
        return False

    async def run(self, batch_index, targets):
        total = len(targets)
        res = BatchResult(batch_index=batch_index, total=total)
        logger.info(f"Starting batch #{batch_index} ({total} transactions)")

        res.claimed = await self.claim_pending()

        snapshot = await self.oracle.get_balances()
        res.funded = await self.encryptor.ensure_funded(snapshot)

        nonces = NonceCounter(await self.oracle.get_nonce(self.wallet.addr))
        logger.debug(f"Next nonce: {nonces.current + 1}")

        for i, recipient in enumerate(targets, start=1):
            if recipient == self.wallet.addr:
                logger.warning(f"Skipping #{i}: cannot send to own address ({recipient[:20]})")
                res.failed += 1
            elif await self.gate.try_private(recipient, snapshot):
                res.private += 1
                res.succeeded += 1
            else:
                nonce = nonces.next()
                res.sent_nonces.append(nonce)
                if await self.send_public(i, recipient, nonce):
                    res.public += 1
                    res.succeeded += 1
                else:
                    res.failed += 1

            if i < total:
                await self.sleep(self.config.delay_between_tx)

        msg = f"Batch #{batch_index} completed: {res.succeeded}/{total} successful ({res.private} private, {res.public} public)"
        if res.succeeded == total:
            success(logger, msg)
        else:
            logger.warning(msg)
        return res
