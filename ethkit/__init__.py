"""Ethereum client core: ABI codec, RLP, legacy transactions with EIP-155 signing."""
import logging

from .abi import ContractInterface, DecodedResult, get_function_selector, parse_element
from .abi_types import canonical_name, parse_type
from .config import Settings, load_settings
from .ec import Client
from .exceptions import (
    ConfigurationError,
    EncodingTypeMismatch,
    EthKitError,
    InvalidParameterType,
    MalformedInput,
    NodeError,
    ParsingError,
    ParsingErrorKind,
    SigningError,
)
from .keys import Keys, private_key_to_address, recover_sender, sign_transaction
from .model import CONTRACT_CREATION, Transaction

__version__ = '0.1.0'

logging.getLogger(__name__).addHandler(logging.NullHandler())
