"""
Public-key encryption of single values.

Keys live on the secp256k1 curve. A public key is the hex of the compressed point and a private
key is the hex of the 32 byte scalar. Each value is encrypted with a fresh ephemeral key: the
AES-256-GCM key is derived with HKDF from the ephemeral point and the ECDH shared secret, and the
result is stored as 'encrypted:' followed by the base64 of the ephemeral point, nonce and
ciphertext.
"""

import base64
import binascii
import logging
import os
import typing

import attr
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from .naming import PUBLIC_KEY_PREFIX
from .utils import DecryptionFailed, MissingPrivateKey

log = logging.getLogger(__name__)

CURVE = ec.SECP256K1()
PREFIX = 'encrypted:'
POINT_LENGTH = 65
NONCE_LENGTH = 16


@attr.s(frozen=True, kw_only=True)
class KeyPair:
    public_key: str = attr.ib()
    private_key: str = attr.ib(repr=False)


def generate_key_pair(existing_private_key: typing.Optional[str] = None) -> KeyPair:
    """
    Create a new key pair.

    If a private key is given the public key is derived from it, so a hand written private key
    always ends up with a matching public key.
    """
    if existing_private_key:
        private = load_private_key(existing_private_key)
    else:
        private = ec.generate_private_key(CURVE)

    return KeyPair(
        public_key=private.public_key().public_bytes(
            serialization.Encoding.X962,
            serialization.PublicFormat.CompressedPoint).hex(),
        private_key=private.private_numbers().private_value.to_bytes(32, 'big').hex())


def load_private_key(private_key: str) -> ec.EllipticCurvePrivateKey:
    return ec.derive_private_key(int(private_key.strip(), 16), CURVE)


def load_public_key(public_key: str) -> ec.EllipticCurvePublicKey:
    return ec.EllipticCurvePublicKey.from_encoded_point(CURVE, bytes.fromhex(public_key.strip()))


def _derive(ephemeral: bytes, shared: bytes) -> AESGCM:
    key = HKDF(
        algorithm=hashes.SHA256(),
        length=32,
        salt=None,
        info=None,
    ).derive(ephemeral + shared)
    return AESGCM(key)


def encrypt_value(value: str, public_key: str) -> str:
    recipient = load_public_key(public_key)
    ephemeral = ec.generate_private_key(CURVE)
    point = ephemeral.public_key().public_bytes(
        serialization.Encoding.X962,
        serialization.PublicFormat.UncompressedPoint)
    nonce = os.urandom(NONCE_LENGTH)

    ciphertext = _derive(point, ephemeral.exchange(ec.ECDH(), recipient)).encrypt(
        nonce, value.encode('utf-8'), None)

    return PREFIX + base64.b64encode(point + nonce + ciphertext).decode('ascii')


def _decrypt_with(payload: bytes, private_key: str) -> str:
    point = payload[:POINT_LENGTH]
    nonce = payload[POINT_LENGTH:POINT_LENGTH + NONCE_LENGTH]
    ciphertext = payload[POINT_LENGTH + NONCE_LENGTH:]

    private = load_private_key(private_key)
    ephemeral = ec.EllipticCurvePublicKey.from_encoded_point(CURVE, point)
    shared = private.exchange(ec.ECDH(), ephemeral)
    return _derive(point, shared).decrypt(nonce, ciphertext, None).decode('utf-8')


def decrypt_value(value: str, private_key: typing.Optional[str], name: str = '') -> str:
    """
    Decrypt a value with a private key.

    The private key may hold several comma separated keys, which are tried in order.
    """
    if not private_key:
        raise MissingPrivateKey(f"missing private key to decrypt {name or 'value'}")

    try:
        payload = base64.b64decode(value[len(PREFIX):], validate=True)
    except binascii.Error as error:
        raise DecryptionFailed(f"malformed encrypted value for {name or 'value'}") from error

    candidates = [k for k in private_key.split(',') if k.strip()]
    for candidate in candidates:
        try:
            return _decrypt_with(payload, candidate)
        except (InvalidTag, ValueError) as error:
            log.debug(f"Private key did not decrypt {name or 'value'}: {error!r}")

    raise DecryptionFailed(
        f"unable to decrypt {name or 'value'} with {len(candidates)} private key(s)")


def is_encrypted(name: str, value: str) -> bool:
    return value.startswith(PREFIX) and len(value) > len(PREFIX)


def is_public_key(name: str, value: str) -> bool:
    return name.startswith(PUBLIC_KEY_PREFIX)
