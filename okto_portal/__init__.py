# okto_portal/__init__.py

__version__ = "0.1.0"

from .factory import create_app  # noqa: E402

__all__ = ["create_app", "__version__"]
