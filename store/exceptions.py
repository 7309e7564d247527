class StoreError(Exception):
    """Base class for errors shown back to the shopper."""

    default_message = "Something went wrong with your request."

    def __init__(self, message=None):
        super().__init__(message or self.default_message)

    @property
    def message(self):
        return self.args[0]


# ------------------------------
# CART
# ------------------------------
class CartError(StoreError):
    pass


class InvalidQuantity(CartError):
    default_message = "Quantity must be at least 1."


class InsufficientStock(CartError):
    default_message = "Not enough stock available."

    def __init__(self, variant=None, requested=None, message=None):
        self.variant = variant
        self.requested = requested
        if message is None and variant is not None:
            message = (
                f"Only {variant.stock} unit(s) of {variant} left in stock."
            )
        super().__init__(message)


class EmptyCart(CartError):
    default_message = "Your cart is empty."


# ------------------------------
# ORDERS
# ------------------------------
class OrderError(StoreError):
    pass


class InvalidTransition(OrderError):
    def __init__(self, current, target):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move an order from '{current}' to '{target}'.")


class DuplicatePaymentReference(OrderError):
    default_message = "A payment reference was already submitted for this order."


# ------------------------------
# ACCOUNTS
# ------------------------------
class AccountError(StoreError):
    pass


class EmailAlreadyRegistered(AccountError):
    default_message = "This email is already registered."


class PasswordChangeError(AccountError):
    pass
