from fastapi import Request

from .product_client import ProductClient


def get_product_client(request: Request) -> ProductClient:
    return request.app.state.product_client
