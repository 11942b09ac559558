from app.api.v1 import internal

__all__ = [
    "internal",
]
