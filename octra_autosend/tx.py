import base64
import hashlib
import json
import time

from .crypto import amount_to_micro, fee_tier, sign

SIGNED_FIELDS = ("from", "to_", "amount", "nonce", "ou", "timestamp")


def canonical_message(tx):
    """Bytes the node verifies: the unsigned fields, fixed order, no spaces."""
    return json.dumps({k: tx[k] for k in SIGNED_FIELDS}, separators=(",", ":")).encode()


def build_transaction(from_addr, to_addr, amount, nonce, seed, now=time.time):
    tx = {
        "from": from_addr,
        "to_": to_addr,
        "amount": str(amount_to_micro(amount)),
        "nonce": int(nonce),
        "ou": fee_tier(amount),
        "timestamp": now(),
    }
    bl = canonical_message(tx)
    sig, pub = sign(seed, bl)
    tx.update(
        signature=base64.b64encode(sig).decode(),
        public_key=base64.b64encode(pub).decode(),
    )
    return tx, hashlib.sha256(bl).hexdigest()
