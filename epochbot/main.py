from __future__ import annotations

import sys

from epochbot.config import load_settings
from epochbot.errors import ConfigurationError
from epochbot.infra import B, paint
from epochbot.runtime.app import run_main


def main() -> int:
    try:
        settings = load_settings()
        run_main(settings)
    except ConfigurationError as exc:
        print(paint(B, str(exc)))
        return 0
    except KeyboardInterrupt:
        return 0
    return 0


if __name__ == "__main__":
    sys.exit(main())
