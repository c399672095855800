from .library import create_library_blueprint

__all__ = [
    "create_library_blueprint",
]
