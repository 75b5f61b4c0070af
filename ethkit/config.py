import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from dotenv import find_dotenv, load_dotenv

from .exceptions import ConfigurationError

DEFAULT_RPC_URL = 'http://localhost:8545'
DEFAULT_GAS_LIMIT = 8000000

ENV_RPC_URL = 'ETHKIT_RPC_URL'
ENV_CHAIN_ID = 'ETHKIT_CHAIN_ID'
ENV_PRIVATE_KEY = 'ETHKIT_PRIVATE_KEY'
ENV_GAS_LIMIT = 'ETHKIT_GAS_LIMIT'


@dataclass(frozen=True)
class Settings:
    """
    Runtime settings for :class:`ethkit.ec.Client`.

    Attributes:
        rpc_url (str): HTTP endpoint of the node.
        chain_id (int, optional): Chain id to sign for; fetched from the node when None.
        private_key (str, optional): ``0x`` hex key of the sending account.
        gas_limit (int): Gas limit for transactions built by the client.
    """

    rpc_url: str = DEFAULT_RPC_URL
    chain_id: Optional[int] = None
    private_key: Optional[str] = None
    gas_limit: int = DEFAULT_GAS_LIMIT


def _int_setting(name: str, default: Optional[int]) -> Optional[int]:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        # accepts decimal or 0x-prefixed hex
        return int(raw.strip(), 0)
    except ValueError as exc:
        raise ConfigurationError(f'{name} must be an integer, got {raw!r}') from exc


def load_settings(env_path: Optional[Union[str, Path]] = None, override: bool = False) -> Settings:
    """
    Reads settings from the environment after loading a ``.env`` file.

    Args:
        env_path (str | Path, optional): The ``.env`` file. Defaults to the nearest
            ``.env`` found from the current directory upwards; a missing file is ignored.
        override (bool): Let values from the file replace variables already set in
            the environment.

    Returns:
        Settings: Values from ``ETHKIT_RPC_URL``, ``ETHKIT_CHAIN_ID``,
        ``ETHKIT_PRIVATE_KEY`` and ``ETHKIT_GAS_LIMIT``, with defaults for unset ones.

    Raises:
        ConfigurationError: If a numeric setting does not parse.
    """
    path = env_path if env_path is not None else find_dotenv(usecwd=True)
    if path and Path(path).exists():
        load_dotenv(path, override=override)

    private_key = os.environ.get(ENV_PRIVATE_KEY) or None
    if private_key is not None and not private_key.startswith('0x'):
        private_key = '0x' + private_key
    gas_limit = _int_setting(ENV_GAS_LIMIT, DEFAULT_GAS_LIMIT)
    if gas_limit <= 0:
        raise ConfigurationError(f'{ENV_GAS_LIMIT} must be positive, got {gas_limit}')
    return Settings(
        rpc_url=os.environ.get(ENV_RPC_URL) or DEFAULT_RPC_URL,
        chain_id=_int_setting(ENV_CHAIN_ID, None),
        private_key=private_key,
        gas_limit=gas_limit,
    )
