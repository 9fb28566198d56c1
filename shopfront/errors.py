from typing import Dict, Optional


class ShopfrontError(Exception):
    """Base error mapped to an HTTP response by the application."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_response(self) -> Dict[str, object]:
        return {"error": self.message}


class DuplicateAccount(ShopfrontError):
    status_code = 400

    def __init__(self, email: str):
        super().__init__("Email id is already registered")
        self.email = email

    def to_response(self) -> Dict[str, object]:
        return {"message": self.message, "alert": False}


class AccountNotFound(ShopfrontError):
    status_code = 400

    def __init__(self, email: str):
        super().__init__("Email not found, Please Sign up!")
        self.email = email

    def to_response(self) -> Dict[str, object]:
        return {"message": self.message, "alert": False}


class MissingField(ShopfrontError):
    status_code = 400

    def __init__(self, field: str):
        super().__init__(f"{field} is required")
        self.field = field

    def to_response(self) -> Dict[str, object]:
        return {"message": self.message, "alert": False}


class StoreUnavailable(ShopfrontError):
    """Connection, read or write failure against the document store."""

    status_code = 500

    def to_response(self) -> Dict[str, object]:
        # The driver message can leak hostnames, keep it in the logs only.
        return {"message": "Server error"}


class InvalidCart(ShopfrontError):
    status_code = 400


class PaymentProviderError(ShopfrontError):
    """Checkout session creation failed; carries the provider's status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message, status_code or 500)


class ConfigurationMissing(ShopfrontError):
    def __init__(self, names):
        self.names = list(names)
        super().__init__(
            "Missing required configuration: " + ", ".join(self.names)
        )
