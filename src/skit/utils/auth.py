"""Password authentication chain: environment -> saved key file -> interactive prompt.

The first source that is present decides the outcome. A present but wrong
password is a hard failure; it never falls through to the next source.
"""
import logging

from typing import Optional

from skit.storage.keyfile import read_key_file, touch_key_file
from skit.storage.safe import check_password
from skit.ui.prompt import Prompt, prompt_password
from skit.utils.config import SkitConfig
from skit.utils.dataModels import Safe
from skit.utils.errors import InvalidPasswordError

logger = logging.getLogger(__name__)

SOURCE_ENV = "environment"
SOURCE_KEY_FILE = "key file"
SOURCE_PROMPT = "interactive prompt"


def password_from_env(safe: Safe, config: SkitConfig) -> Optional[str]:
    password = config.env_password()
    if password is None:
        return None
    try:
        check_password(safe, password, SOURCE_ENV)
    except InvalidPasswordError:
        raise InvalidPasswordError(
            f"Invalid password from environment variable {config.env_var}", source=SOURCE_ENV
        ) from None
    return password


def password_from_key_file(safe: Safe, config: SkitConfig) -> Optional[str]:
    key_file = config.key_file(safe.uuid)
    password = read_key_file(key_file)
    if password is None:
        return None
    try:
        check_password(safe, password, SOURCE_KEY_FILE)
    except InvalidPasswordError:
        raise InvalidPasswordError(
            f"Password in key file {key_file} is invalid", source=SOURCE_KEY_FILE
        ) from None
    touch_key_file(key_file)
    return password


def password_from_prompt(safe: Safe, prompt: Prompt, message: str) -> str:
    password = prompt(message)
    try:
        check_password(safe, password, SOURCE_PROMPT)
    except InvalidPasswordError:
        raise InvalidPasswordError(
            "Invalid password from interactive prompt", source=SOURCE_PROMPT
        ) from None
    return password


def resolve_password(
    safe: Safe,
    config: SkitConfig,
    prompt: Prompt = prompt_password,
    message: str = "Enter safe password: ",
) -> str:
    password = password_from_env(safe, config)
    if password is not None:
        logger.info("Using safe key from environment")
        return password

    password = password_from_key_file(safe, config)
    if password is not None:
        logger.info("Using saved safe key")
        return password

    return password_from_prompt(safe, prompt, message)
