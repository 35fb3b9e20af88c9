# sofizpay/services/__init__.py
"""Services built on top of the Stellar layer: CIB payments, stream registry and the SDK facade."""
