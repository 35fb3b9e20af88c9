# sofizpay/stellar/sdk_utils.py
"""Low-level Stellar SDK utilities: network, server connections, keypairs."""

from typing import Optional

from stellar_sdk import Keypair, Network
from stellar_sdk.client.aiohttp_client import AiohttpClient
from stellar_sdk.server_async import ServerAsync

from sofizpay.config_reader import config, Settings
from sofizpay.domain import AssetFilter


# ============ Stellar Network Configuration ============

TESTNET_HORIZON_URL = "https://horizon-testnet.stellar.org"
SECRET_KEY_LENGTH = 56


def get_horizon_url(settings: Optional[Settings] = None) -> str:
    """Get Horizon URL based on config."""
    settings = settings or config
    if settings.stellar_testnet:
        return TESTNET_HORIZON_URL
    return settings.horizon_url.rstrip("/")


def get_network_passphrase(settings: Optional[Settings] = None) -> str:
    """Get network passphrase based on config."""
    settings = settings or config
    if settings.stellar_testnet:
        return Network.TESTNET_NETWORK_PASSPHRASE
    return Network.PUBLIC_NETWORK_PASSPHRASE


def get_asset_filter(settings: Optional[Settings] = None) -> AssetFilter:
    """Get the tracked asset from config."""
    settings = settings or config
    return AssetFilter(code=settings.asset_code, issuer=settings.asset_issuer)


# ============ Server Factories ============

def get_server_async(settings: Optional[Settings] = None) -> ServerAsync:
    """Get asynchronous Stellar Horizon server connection."""
    return ServerAsync(horizon_url=get_horizon_url(settings), client=AiohttpClient())


# ============ Keypair Utilities ============

def is_valid_public_key(public_key: str) -> bool:
    """Check that public_key is a valid ed25519 account id (G...)."""
    try:
        Keypair.from_public_key(public_key)
        return True
    except Exception:
        return False


def public_key_from_secret(secret_key: str) -> str:
    """
    Derive the account id from a secret seed.

    Args:
        secret_key: Stellar secret seed (S..., 56 chars)

    Returns:
        Public key (G...)

    Raises:
        ValueError: If the seed is malformed
    """
    if not isinstance(secret_key, str) or not secret_key:
        raise ValueError("Invalid secret key: must be a non-empty string")
    if not secret_key.startswith("S") or len(secret_key) != SECRET_KEY_LENGTH:
        raise ValueError(
            "Invalid secret key format. Secret keys should start with S and be 56 characters long."
        )
    try:
        return Keypair.from_secret(secret_key).public_key
    except Exception as ex:
        raise ValueError(f"Failed to extract public key: {ex}") from ex
