from .contracts import PROFILES, ContractProfile, get_profile
from .nonce import NonceManager
from .prediction import PredictionGateway, connect_web3
from .subscription import RoundStartPoller

__all__ = [
    "PROFILES",
    "ContractProfile",
    "get_profile",
    "NonceManager",
    "PredictionGateway",
    "connect_web3",
    "RoundStartPoller",
]
