import os

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

start_path = os.path.dirname(os.path.dirname(__file__)) + '/'
dotenv_path = os.path.join(start_path, '.env')

SOFIZPAY_PUBLIC_KEY_PEM = """-----BEGIN PUBLIC KEY-----
MIIBIjANBgkqhkiG9w0BAQEFAAOCAQ8AMIIBCgKCAQEA1N+bDPxpqeB9QB0affr/
02aeRXAAnqHuLrgiUlVNdXtF7t+2w8pnEg+m9RRlc+4YEY6UyKTUjVe6k7v2p8Jj
UItk/fMNOEg/zY222EbqsKZ2mF4hzqgyJ3QHPXjZEEqABkbcYVv4ZyV2Wq0x0ykI
+Hy/5YWKeah4RP2uEML1FlXGpuacnMXpW6n36dne3fUN+OzILGefeRpmpnSGO5+i
JmpF2mRdKL3hs9WgaLSg6uQyrQuJA9xqcCpUmpNbIGYXN9QZxjdyRGnxivTE8awx
THV3WRcKrP2krz3ruRGF6yP6PVHEuPc0YDLsYjV5uhfs7JtIksNKhRRAQ16bAsj/
9wIDAQAB
-----END PUBLIC KEY-----"""


class Settings(BaseSettings):
    horizon_url: str = "https://horizon.stellar.org"
    stellar_testnet: bool = False
    base_fee: int = 100
    transaction_timeout: int = 60

    # tracked asset
    asset_code: str = "DZT"
    asset_issuer: str = "GCAZI7YBLIDJWIVEL7ETNAZGPP3LC24NO6KAOBWZHUERXQ7M5BC52DLV"

    # streaming
    stream_check_interval: int = Field(30, ge=5, le=300)
    history_limit: int = 200
    history_delivery_pause: float = 0.05

    # raw horizon fetches
    fetch_retries: int = 3
    fetch_retry_delay: float = 1.0

    # shared http session
    http_session_max_age: float = 3600
    http_timeout: float = 30

    cib_url: str = "https://www.sofizpay.com/make-cib-transaction/"
    signature_public_key: str = SOFIZPAY_PUBLIC_KEY_PEM

    model_config = SettingsConfigDict(
        env_prefix='SOFIZPAY_',
        env_file=dotenv_path,
        env_file_encoding='utf-8',
        extra='ignore',
        case_sensitive=False
    )


config: Settings = Settings()
