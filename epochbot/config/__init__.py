from .settings import PROFILE_DEFAULTS, Settings, load_settings, parse_signal_pairs

__all__ = ["PROFILE_DEFAULTS", "Settings", "load_settings", "parse_signal_pairs"]
