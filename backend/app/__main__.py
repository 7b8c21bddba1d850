"""Run the API server: ``python -m app`` or the ``paid-json-tools`` script."""

import sys

import uvicorn
from pydantic import ValidationError
from pydantic_settings import SettingsError

from .config import get_settings
from .logging_config import setup_logging


def main() -> None:
    try:
        settings = get_settings()
    except (ValidationError, SettingsError) as e:
        # PAY_TO / JWT_SECRET missing or invalid, or CHAINS_JSON unparseable
        print(f"Invalid configuration:\n{e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(settings.log_level)

    from .main import app

    uvicorn.run(app, host="0.0.0.0", port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
