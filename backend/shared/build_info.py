"""Build metadata reported by /health and /status."""

import os
from importlib.metadata import PackageNotFoundError, version


def _package_version() -> str:
    try:
        return version("gallows")
    except PackageNotFoundError:
        return "dev"


APP_VERSION: str = os.environ.get("APP_VERSION") or _package_version()
GIT_COMMIT: str = os.environ.get("GIT_COMMIT", "dev")
