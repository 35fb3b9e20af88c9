# sofizpay/domain/errors.py
"""Domain exceptions."""


class ValidationError(ValueError):
    """Missing or invalid caller input, raised before any network call."""
    pass


def require(value, message: str) -> None:
    """Raise ValidationError with message when value is empty."""
    if value is None or value == "":
        raise ValidationError(message)
