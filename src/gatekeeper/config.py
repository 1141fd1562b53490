import os
import dotenv
import logging
from typing import Mapping, Optional

dotenv.load_dotenv()

GITHUB_API_URL = os.environ.get("GITHUB_API_URL", "https://api.github.com")

GITHUB_EVENT_PATH = os.environ.get("GITHUB_EVENT_PATH")

GITHUB_ACTIONS = os.environ.get("GITHUB_ACTIONS", "false") == "true"

OVERRIDE_LOGGING = logging.getLevelName(os.environ.get("OVERRIDE_LOGGING", "INFO"))

TELEGRAM_TOKEN = os.environ.get("TELEGRAM_TOKEN")
TELEGRAM_CHAT_ID = os.environ.get("TELEGRAM_CHAT_ID")

DRY_RUN = os.environ.get("DRY_RUN", "false") == "true"

PUSH_GATEWAY = os.environ.get("PUSH_GATEWAY")


class MissingInput(Exception):
    name: str

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Input required and not supplied: {name}")


def input_variable(name: str) -> str:
    return "INPUT_" + name.replace(" ", "_").upper()


def get_input(
    name: str,
    default: str = "",
    required: bool = False,
    environ: Optional[Mapping[str, str]] = None,
) -> str:
    """
    Read an action input the way the Actions runner exposes it: as an
    ``INPUT_<NAME>`` environment variable. Empty values fall back to
    ``default``.
    """
    if environ is None:
        environ = os.environ
    value = environ.get(input_variable(name), "").strip()
    if value == "":
        if required:
            raise MissingInput(name)
        return default
    return value
