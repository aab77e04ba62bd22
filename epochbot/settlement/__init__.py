from .manager import ClaimManager, ClaimResult, TransferResult, plan_transfers
from .transforms import PayoutTransform, share_transform

__all__ = [
    "ClaimManager",
    "ClaimResult",
    "TransferResult",
    "plan_transfers",
    "PayoutTransform",
    "share_transform",
]
