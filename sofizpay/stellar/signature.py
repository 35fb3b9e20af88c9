# sofizpay/stellar/signature.py
"""Verification of SofizPay-signed callback messages."""

import base64
from typing import Optional

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding
from cryptography.hazmat.primitives.serialization import load_pem_public_key
from loguru import logger

from sofizpay.config_reader import config


def decode_url_safe_signature(signature_url_safe: str) -> bytes:
    """Decode URL-safe base64, restoring the '=' padding the sender stripped."""
    standard = signature_url_safe.replace("-", "+").replace("_", "/")
    standard += "=" * (-len(standard) % 4)
    return base64.b64decode(standard, validate=True)


def verify_signature(message: str, signature_url_safe: str, public_key_pem: Optional[str] = None) -> bool:
    """
    Check an RSA (PKCS#1 v1.5, SHA-256) signature of message.

    Args:
        message: Signed text, hashed as UTF-8
        signature_url_safe: URL-safe base64 signature
        public_key_pem: PEM public key, the SofizPay key by default

    Returns:
        True when the signature is valid. Any decoding or verification problem gives False.
    """
    if not message or not signature_url_safe:
        return False

    try:
        signature = decode_url_safe_signature(signature_url_safe)
        public_key = load_pem_public_key((public_key_pem or config.signature_public_key).encode())
        public_key.verify(signature, message.encode("utf-8"), padding.PKCS1v15(), hashes.SHA256())
        return True
    except InvalidSignature:
        return False
    except Exception as ex:
        logger.error(f"Signature verification error: {ex}")
        return False
