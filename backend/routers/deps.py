from fastapi import Request

from backend.services.storage import Storage


def get_storage(request: Request) -> Storage:
    return request.app.state.storage
