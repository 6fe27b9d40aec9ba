# cartflow/domain/errors.py


class CheckoutError(Exception):
    """Base for every error the cart and checkout core reports to its caller."""

    code = "checkout_error"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def as_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class ShippingValidationError(CheckoutError):
    code = "shipping_invalid"

    def __init__(self, missing: list[str]) -> None:
        super().__init__(f"Missing shipping fields: {', '.join(missing)}")
        self.missing = missing

    def as_dict(self) -> dict:
        return {**super().as_dict(), "missing": self.missing}


class PaymentValidationError(CheckoutError):
    code = "payment_invalid"


class AddressNotFound(CheckoutError):
    code = "address_not_found"


class GeocodeServiceError(CheckoutError):
    code = "geocode_unavailable"


class QuoteUnavailable(CheckoutError):
    code = "quote_unavailable"


class VoucherNotApplicable(CheckoutError):
    code = "voucher_not_applicable"


class OutOfStock(CheckoutError):
    code = "out_of_stock"


class LineNotFound(CheckoutError):
    code = "line_not_found"


class EmptyCheckout(CheckoutError):
    code = "empty_checkout"


class OrderPersistenceError(CheckoutError):
    code = "order_not_saved"


class PaymentSessionError(CheckoutError):
    code = "payment_session_failed"


class InvalidTransition(CheckoutError):
    code = "invalid_transition"


class CatalogUnavailable(CheckoutError):
    code = "catalog_unavailable"
