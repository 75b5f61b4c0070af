from enum import Enum
from typing import Optional


class EthKitError(ValueError):
    """Base class for every error raised by ethkit."""


class InvalidParameterType(EthKitError):
    """An ABI type signature does not match the grammar or violates its length constraints."""


class EncodingTypeMismatch(EthKitError):
    """A value's runtime shape disagrees with the ABI type it is encoded or read as."""


class MalformedInput(EthKitError):
    """RLP, ABI or JSON-RPC input is truncated, over-length or not in canonical form."""


class SigningError(EthKitError):
    """Key material is invalid for secp256k1, or a transaction cannot be signed."""


class ParsingErrorKind(Enum):
    INVALID_JSON_FILE = 'invalidJsonFile'
    ELEMENT_TYPE_INVALID = 'elementTypeInvalid'
    ELEMENT_NAME_INVALID = 'elementNameInvalid'
    FUNCTION_INPUT_INVALID = 'functionInputInvalid'
    FUNCTION_OUTPUT_INVALID = 'functionOutputInvalid'
    EVENT_INPUT_INVALID = 'eventInputInvalid'
    PARAMETER_TYPE_INVALID = 'parameterTypeInvalid'
    PARAMETER_TYPE_NOT_FOUND = 'parameterTypeNotFound'
    ABI_INVALID = 'abiInvalid'


class ParsingError(EthKitError):
    """
    Raised while turning an ABI JSON description into typed elements.

    Attributes:
        kind (ParsingErrorKind): Which part of the record was rejected.
    """

    def __init__(self, kind: ParsingErrorKind, message: str = ''):
        self.kind = kind
        super().__init__(f'{kind.value}: {message}' if message else kind.value)


class NodeError(EthKitError):
    """
    An error payload returned by the node for a JSON-RPC request.

    Attributes:
        code (int | None): The JSON-RPC error code, when the node supplied one.
        message (str): The node's error message.
    """

    def __init__(self, message: str, code: Optional[int] = None):
        self.code = code
        self.message = message
        super().__init__(message if code is None else f'{message} (code {code})')


class ConfigurationError(EthKitError):
    """A setting read from the environment or a ``.env`` file has an invalid value."""
