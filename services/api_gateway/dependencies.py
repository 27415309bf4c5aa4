from fastapi import Request

from .dispatcher import ReverseDispatcher


def get_dispatcher(request: Request) -> ReverseDispatcher:
    return request.app.state.dispatcher
