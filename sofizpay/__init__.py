# sofizpay/__init__.py
"""SofizPay SDK: DZT payments on the Stellar network."""

from sofizpay.services.sdk import SDK_VERSION, SofizPaySDK

__version__ = SDK_VERSION

__all__ = ["SofizPaySDK", "__version__"]
