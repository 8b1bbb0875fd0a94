
class PasswordVerificationError(Exception):
    """Raised when password hashing or verification fails."""
    pass

class AuthenticationFailed(Exception):
    """
    Raised when a user provides incorrect credentials (email/password)
    or an invalid/expired JWT.

    Expected Result: 401 Unauthorized
    """
    pass

class NotAuthorized(Exception):
    """
    Raised when a user is authenticated but does not have permission
    to access a specific resource (e.g., another customer's prescription file).

    Expected Result: 403 Forbidden
    """
    pass

class EmailNotVerified(Exception):
    """
    Raised when an account with valid credentials has not confirmed its email.

    Expected Result: 403 Forbidden
    """
    pass

class InsufficientStockError(Exception):
    """
    Raised when a guarded stock decrement touches no rows
    while an order is being placed.

    Expected Result: 400 Bad Request (the order transaction is rolled back)
    """
    def __init__(self, medication_name: str):
        self.medication_name = medication_name
        super().__init__(f"Insufficient stock for {medication_name}")
