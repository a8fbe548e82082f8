"""
Capture module - Device capture abstraction layer.

Factory function for creating the capture backend selected at process start.
"""

from .base import BaseCaptureBackend

__all__ = ["BaseCaptureBackend", "create_capture_backend"]


def create_capture_backend(kind: str, **kwargs) -> BaseCaptureBackend:
    """
    Factory function to create a capture backend by kind.

    Args:
        kind: Backend variant ("native" or "browser")
        **kwargs: Variant-specific configuration

    Returns:
        BaseCaptureBackend implementation instance

    Raises:
        ValueError: If kind is unknown
    """
    if kind == "native":
        from .native import NativeCaptureBackend
        return NativeCaptureBackend(**kwargs)
    elif kind == "browser":
        from .browser import BrowserCaptureBackend
        return BrowserCaptureBackend(**kwargs)
    else:
        raise ValueError(f"Unknown capture backend: {kind}")
