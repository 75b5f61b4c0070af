import logging
import time
from typing import Any, List, Optional, Union

from eth_typing import HexStr
from web3 import Web3
from web3.exceptions import TimeExhausted
from web3.providers.base import BaseProvider

from .abi import ContractInterface, DecodedResult
from .config import DEFAULT_GAS_LIMIT, Settings
from .exceptions import MalformedInput, NodeError
from .keys import Keys
from .model import CONTRACT_CREATION, Transaction
from .rpc import (
    TransactionDetails,
    TransactionReceipt,
    from_data,
    from_quantity,
    parse_address,
    raw_transaction_params,
    to_data,
    transaction_to_json,
)
from .utils import get_bytecode

logger = logging.getLogger(__name__)


def _as_interface(contract_abi) -> ContractInterface:
    if isinstance(contract_abi, ContractInterface):
        return contract_abi
    return ContractInterface(contract_abi)


def _as_address(address: Union[str, bytes]) -> bytes:
    if isinstance(address, (bytes, bytearray)):
        return bytes(address)
    return parse_address(address)


class Client:
    """
    A client for an Ethereum node.

    Web3's provider is the transport: requests go through ``provider.make_request``
    and everything on either side of it (building, signing and RLP-encoding
    transactions, ABI-encoding calls, decoding results) is done by ethkit.
    """

    def __init__(self, url: Union[str, BaseProvider], keys_supplier, chain_id: Optional[int] = None,
                 gas: int = DEFAULT_GAS_LIMIT):
        """
        Initializes the client.

        Args:
            url (str | BaseProvider): The node's HTTP URL (e.g. ``http://localhost:8545``),
                or a ready web3 provider.
            keys_supplier: A callable taking the ``Web3`` instance and returning a
                :class:`ethkit.keys.Keys` (see ``Keys.from_private_key`` and friends).
            chain_id (int, optional): The chain id to sign for; fetched with
                ``eth_chainId`` on first use when None.
            gas (int): Default gas limit for transactions built by this client.
        """
        provider = url if isinstance(url, BaseProvider) else Web3.HTTPProvider(url)
        self.w3 = Web3(provider)
        self.keys = keys_supplier(self.w3)
        self.gas = gas
        self._chain_id = chain_id

    @classmethod
    def from_settings(cls, settings: Settings) -> 'Client':
        return cls(settings.rpc_url, Keys.from_settings(settings), chain_id=settings.chain_id,
                   gas=settings.gas_limit)

    def request(self, method: str, params: List[Any]) -> Any:
        """
        Sends one JSON-RPC request and returns its ``result``.

        Raises:
            NodeError: If the node answers with an error payload.
        """
        logger.debug('-> %s %s', method, params)
        response = self.w3.provider.make_request(method, params)
        error = response.get('error')
        if error:
            if isinstance(error, dict):
                raise NodeError(error.get('message', 'unknown error'), error.get('code'))
            raise NodeError(str(error))
        if 'result' not in response:
            raise MalformedInput(f'{method} response has neither result nor error')
        logger.debug('<- %s %s', method, response['result'])
        return response['result']

    @property
    def chain_id(self) -> int:
        if self._chain_id is None:
            self._chain_id = from_quantity(self.request('eth_chainId', []))
        return self._chain_id

    def get_latest_nonce(self) -> int:
        """
        The account's transaction count, counting transactions still in the mempool
        (``pending``).
        """
        return from_quantity(self.request('eth_getTransactionCount', [self.keys.address, 'pending']))

    def get_gas_price(self) -> int:
        return from_quantity(self.request('eth_gasPrice', []))

    def get_balance(self, address: Optional[str] = None, block_identifier: str = 'latest') -> int:
        address = self.keys.address if address is None else Web3.to_checksum_address(address)
        return from_quantity(self.request('eth_getBalance', [address, block_identifier]))

    def get_block_number(self) -> int:
        return from_quantity(self.request('eth_blockNumber', []))

    def get_address_bytes(self) -> bytes:
        return _as_address(self.keys.address)

    def get_transaction(self, tx_hash: Union[HexStr, bytes]) -> Optional[TransactionDetails]:
        tx_hash = to_data(tx_hash) if isinstance(tx_hash, bytes) else tx_hash
        result = self.request('eth_getTransactionByHash', [tx_hash])
        return None if result is None else TransactionDetails.from_json(result)

    def get_transaction_receipt(self, tx_hash: Union[HexStr, bytes]) -> Optional[TransactionReceipt]:
        tx_hash = to_data(tx_hash) if isinstance(tx_hash, bytes) else tx_hash
        result = self.request('eth_getTransactionReceipt', [tx_hash])
        return None if result is None else TransactionReceipt.from_json(result)

    def wait_for_transaction_receipt(self, tx_hash: Union[HexStr, bytes], timeout: float = 120,
                                     poll_latency: float = 0.1) -> TransactionReceipt:
        """
        Polls until the transaction is mined.

        Raises:
            TimeExhausted: If no receipt appears within ``timeout`` seconds.
        """
        deadline = time.monotonic() + timeout
        while True:
            receipt = self.get_transaction_receipt(tx_hash)
            if receipt is not None:
                return receipt
            if time.monotonic() >= deadline:
                raise TimeExhausted(f'transaction {tx_hash!r} is not in the chain after {timeout} seconds')
            time.sleep(poll_latency)

    def build_transaction(self, to: Union[str, bytes] = CONTRACT_CREATION, data: bytes = b'', value: int = 0,
                          gas: Optional[int] = None, nonce: Optional[int] = None,
                          gas_price: Optional[int] = None) -> Transaction:
        """
        An unsigned transaction from this client's account, with the nonce and gas price
        fetched from the node when not given.
        """
        return Transaction(
            nonce=self.get_latest_nonce() if nonce is None else nonce,
            gas_price=self.get_gas_price() if gas_price is None else gas_price,
            gas_limit=self.gas if gas is None else gas,
            to=to if to == CONTRACT_CREATION else _as_address(to),
            value=value,
            data=data,
            chain_id=self.chain_id,
        )

    def sign_transaction(self, transaction: Transaction) -> Transaction:
        chain_id = self.chain_id if transaction.chain_id is None else transaction.chain_id
        return self.keys.sign_transaction(transaction, chain_id)

    def send_transaction(self, transaction: Transaction, gas: Optional[int] = None,
                         verbose=True) -> TransactionReceipt:
        """
        Signs and sends a transaction and waits for it to be mined.

        The nonce is refreshed from the node and the gas limit set to ``gas`` (the
        client's default when None) before signing.

        Returns:
            TransactionReceipt: The receipt once the transaction is mined.
        """
        transaction = transaction.merged_with(nonce=self.get_latest_nonce(), gas_limit=self.gas if gas is None else gas)
        return self.__sign_send_wait(transaction, verbose)

    def __send_and_wait(self, signed: Transaction, verbose=True) -> TransactionReceipt:
        tx_hash = self.request('eth_sendRawTransaction', raw_transaction_params(signed))
        if verbose:
            logger.info('sent %s as %s', signed.raw_transaction, tx_hash)
        receipt = self.wait_for_transaction_receipt(tx_hash)
        if verbose:
            logger.info('mined %s in block %d with status %s', tx_hash, receipt.block_number, receipt.status)
        return receipt

    def __sign_send_wait(self, transaction: Transaction, verbose) -> TransactionReceipt:
        return self.__send_and_wait(self.sign_transaction(transaction), verbose)

    def send_signed_raw_transaction(self, raw_tx: Union[HexStr, bytes], verbose=True) -> TransactionReceipt:
        """
        Sends a transaction signed elsewhere and waits for its receipt.

        Raises:
            MalformedInput: If ``raw_tx`` is not a legacy transaction.
            SigningError: If it is unsigned.
        """
        return self.__send_and_wait(Transaction.from_raw(raw_tx), verbose)

    def deploy_contract(self, contract_json, *params, gas: Optional[int] = None,
                        get_abi=lambda x: x['abi'], value=0, get_bytecode=get_bytecode,
                        verbose=True) -> Optional[str]:
        """
        Deploys a contract.

        Args:
            contract_json (dict): A compiled artifact (Hardhat, Truffle or Foundry).
            *params: Constructor arguments.
            gas (int, optional): Gas limit; the client default when None.
            get_abi (callable): Extracts the ABI from ``contract_json``.
            value (int): Wei sent to the constructor.
            get_bytecode (callable): Extracts the creation bytecode (bytes) from ``contract_json``.
            verbose (bool): Log the transaction and receipt.

        Returns:
            str: The checksummed address of the deployed contract.
        """
        interface = _as_interface(get_abi(contract_json))
        data = interface.encode_constructor(get_bytecode(contract_json), *params)
        transaction = self.build_transaction(CONTRACT_CREATION, data, value=value, gas=gas)
        return self.__sign_send_wait(transaction, verbose).contract_address

    def transact_function(self, contract_address, contract_abi, function_name, *params, gas: Optional[int] = None,
                          value=0, verbose=True) -> TransactionReceipt:
        """
        Sends a state-changing call to a contract function and waits for it to be mined.

        Args:
            contract_address (str): The contract's address.
            contract_abi (list | ContractInterface): The contract's ABI.
            function_name (str): Function name, or full signature for an overload.
            *params: The function's arguments.
        """
        data = _as_interface(contract_abi).encode_call(function_name, *params)
        transaction = self.build_transaction(contract_address, data, value=value, gas=gas)
        receipt = self.__sign_send_wait(transaction, verbose)
        if verbose:
            logger.info('called %s on %s with params: %s and status %s', function_name, contract_address, params,
                        receipt.status)
        return receipt

    def call_function(self, contract_address, contract_abi, function_name, *params,
                      verbose=True) -> DecodedResult:
        """
        Runs a read-only call (``eth_call`` against the pending block) and decodes the
        function's outputs.
        """
        function = _as_interface(contract_abi).function(function_name, len(params))
        call = {
            'from': self.keys.address,
            'to': Web3.to_checksum_address(contract_address),
            'data': to_data(function.encode_call(*params)),
        }
        result = function.decode_output(from_data(self.request('eth_call', [call, 'pending'])))
        if verbose:
            logger.info('%s.%s %s = %s', contract_address, function_name, params, result)
        return result

    def estimate_gas(self, transaction: Transaction) -> int:
        params = transaction_to_json(transaction, sender=self.keys.address)
        return from_quantity(self.request('eth_estimateGas', [params]))

    def sign_hash(self, hashed: bytes):
        """Signs a 32-byte hash with the client's key; ``v`` of the result is 27/28."""
        return self.keys.sign_hash(hashed)
