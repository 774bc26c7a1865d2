"""Request dependencies."""

from fastapi import Request

from innkeep.engine import Engine


def get_engine(request: Request) -> Engine:
    return request.app.state.engine
