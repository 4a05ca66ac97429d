"""
Domain errors raised by the services and translated to HTTP errors by the API.
"""


class RecordNotFoundError(LookupError):
    """Raised when a referenced row does not exist (or is outside the dive center)."""

    def __init__(self, model: str, record_id):
        self.model = model
        self.record_id = record_id
        self.message = f"{model} not found: {record_id}"
        super().__init__(self.message)


class CommissionError(ValueError):
    """Raised when a commission cannot be calculated or updated."""


class MissingExchangeRateError(Exception):
    """Raised when an exchange rate is missing for currency conversion."""

    def __init__(self, from_currency: str, to_currency: str):
        self.from_currency = from_currency
        self.to_currency = to_currency
        self.message = f"Currency conversion rate not found for conversion from {from_currency} to {to_currency}"
        super().__init__(self.message)
