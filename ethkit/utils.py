import json

from eth_utils import decode_hex


def read_contract_json(file_name: str):
    """
    Reads a compiled contract file (Hardhat/Truffle/Foundry artifact or a bare ABI).

    Args:
        file_name (str): Path of the JSON file.

    Returns:
        dict | list: The parsed JSON, usually holding ``abi`` and ``bytecode``.
    """
    with open(file_name, 'r') as fle:
        return json.load(fle)


def get_bytecode(contract_json) -> bytes:
    """
    Extracts the creation bytecode from an artifact.

    Hardhat and Truffle store a hex string under ``bytecode``; Foundry nests it as
    ``bytecode.object``.

    Raises:
        KeyError: If the artifact has no bytecode.
    """
    bytecode = contract_json['bytecode']
    if isinstance(bytecode, dict):
        bytecode = bytecode['object']
    if isinstance(bytecode, str):
        return decode_hex(bytecode)
    return bytes(bytecode)
