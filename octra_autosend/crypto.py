import base64
import binascii
import hashlib
import secrets

import nacl.exceptions
import nacl.signing
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .config import μ
from .errors import InvalidKeyMaterial

SEED_SIZE = 32
BALANCE_SALT = b"octra_encrypted_balance_v2"
CLAIM_SALT = b"OCTRA_SYMMETRIC_V1"


def decode_seed(priv_b64):
    try:
        seed = base64.b64decode(priv_b64, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidKeyMaterial(f"private key is not valid base64: {e}")
    if len(seed) != SEED_SIZE:
        raise InvalidKeyMaterial(f"seed must be {SEED_SIZE} bytes, got {len(seed)}")
    return seed


def signing_key(seed):
    if not isinstance(seed, (bytes, bytearray)) or len(seed) != SEED_SIZE:
        size = len(seed) if isinstance(seed, (bytes, bytearray)) else type(seed).__name__
        raise InvalidKeyMaterial(f"seed must be {SEED_SIZE} bytes, got {size}")
    return nacl.signing.SigningKey(bytes(seed))


def sign(seed, message):
    """Detached Ed25519 signature over ``message``.

    Returns ``(signature, public_key)`` as raw bytes (64 and 32 long). The
    keypair is derived deterministically from the seed.
    """
    sk = signing_key(seed)
    sig = sk.sign(message).signature
    return sig, sk.verify_key.encode()


def verify(signature, message, public_key):
    try:
        nacl.signing.VerifyKey(public_key).verify(message, signature)
        return True
    except (nacl.exceptions.BadSignatureError, nacl.exceptions.ValueError, nacl.exceptions.TypeError):
        return False


def amount_to_micro(amount):
    return int(amount * μ)


def fee_tier(amount):
    return "1" if amount < 1000 else "3"


def derive_encryption_key(priv_b64):
    privkey_bytes = base64.b64decode(priv_b64)
    return hashlib.sha256(BALANCE_SALT + privkey_bytes).digest()[:32]


def encrypt_client_balance(balance, priv_b64):
    key = derive_encryption_key(priv_b64)
    nonce = secrets.token_bytes(12)
    ciphertext = AESGCM(key).encrypt(nonce, str(balance).encode(), None)
    return "v2|" + base64.b64encode(nonce + ciphertext).decode()


def derive_shared_secret(priv_b64, ephemeral_pub_b64):
    my_pub = signing_key(base64.b64decode(priv_b64)).verify_key.encode()
    eph_pub = base64.b64decode(ephemeral_pub_b64)
    smaller, larger = sorted((eph_pub, my_pub))
    round1 = hashlib.sha256(smaller + larger).digest()
    return hashlib.sha256(round1 + CLAIM_SALT).digest()[:32]


def decrypt_private_amount(encrypted_data, shared_secret):
    if not encrypted_data or not encrypted_data.startswith("v2|"):
        return None
    return _open_v2(encrypted_data, shared_secret)


def _open_v2(encrypted_data, key):
    try:
        raw = base64.b64decode(encrypted_data[3:])
    except (binascii.Error, ValueError):
        return None
    # 12 byte nonce + 16 byte tag
    if len(raw) < 28:
        return None
    try:
        plaintext = AESGCM(key).decrypt(raw[:12], raw[12:], None)
        return int(plaintext.decode())
    except (InvalidTag, ValueError):
        return None
