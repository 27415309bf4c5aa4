from fastapi import status


class OrderServiceError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Internal server error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        if message:
            self.message = message


class EmptyOrder(OrderServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Order items are required"


class InvalidStatus(OrderServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid status"


class ProductNotFound(OrderServiceError):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Invalid product: {product_id}")


class OrderTotalTooLarge(OrderServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Order total exceeds the maximum amount"


class OrderNotFound(OrderServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Order not found"


class CannotCancel(OrderNotFound):
    """Missing, foreign and non-cancellable orders look the same to the caller."""
    message = "Order not found or cannot be cancelled"


class InvalidTransition(OrderServiceError):
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot change status from '{current}' to '{requested}'")


class PersistenceError(OrderServiceError):
    """Storage failure; details are logged, never returned."""
