from .manager import WagerManager, WagerResult

__all__ = ["WagerManager", "WagerResult"]
