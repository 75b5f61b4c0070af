# EIP-155 reference example
EIP155_PRIVATE_KEY = '0x' + '46' * 32
EIP155_ADDRESS = '0x9d8a62f656a8d1615c1294fd71e9cfb3e4855a4f'
EIP155_SIGNING_DATA = (
    'ec098504a817c800825208943535353535353535353535353535353535353535880de0b6b3a764000080018080'
)
EIP155_SIGNING_HASH = 'daf5a779ae972f972197303d7b574746c7ef83eadac0f2791ad23db92e4c8e53'
EIP155_SIGNED_TX = (
    '0xf86c098504a817c800825208943535353535353535353535353535353535353535880de0b6b3a76400008025'
    'a028ef61340bd939bc2195fe537567866003e1a15d3c71ff63e1590620aa636276'
    'a067cbe9d8997f761aecb703304b3800ccf555c9f3dc64214b297fb1966a3b6d83'
)


ERC20_ABI = [
    {'type': 'constructor', 'stateMutability': 'nonpayable',
     'inputs': [{'name': 'supply', 'type': 'uint256'}, {'name': 'symbol', 'type': 'string'}]},
    {'type': 'function', 'name': 'balanceOf', 'stateMutability': 'view',
     'inputs': [{'name': 'owner', 'type': 'address'}], 'outputs': [{'name': 'balance', 'type': 'uint256'}]},
    {'type': 'function', 'name': 'transfer', 'stateMutability': 'nonpayable',
     'inputs': [{'name': 'to', 'type': 'address'}, {'name': 'value', 'type': 'uint'}],
     'outputs': [{'name': '', 'type': 'bool'}]},
    {'type': 'function', 'name': 'transfer', 'stateMutability': 'nonpayable',
     'inputs': [{'name': 'to', 'type': 'address'}, {'name': 'value', 'type': 'uint256'},
                {'name': 'memo', 'type': 'bytes'}],
     'outputs': []},
    {'name': 'deposit', 'payable': True, 'inputs': [], 'outputs': []},
    {'type': 'fallback', 'stateMutability': 'payable'},
    {'type': 'event', 'name': 'Transfer', 'anonymous': False,
     'inputs': [{'name': 'from', 'type': 'address', 'indexed': True},
                {'name': 'to', 'type': 'address', 'indexed': True},
                {'name': 'value', 'type': 'uint256', 'indexed': False}]},
]

SIGNED_TX_JSON = {
    'blockHash': '0x' + '11' * 32,
    'blockNumber': '0x10',
    'transactionIndex': '0x0',
    'hash': '0x' + '22' * 32,
    'from': EIP155_ADDRESS,
    'nonce': '0x9',
    'gasPrice': '0x4a817c800',
    'gas': '0x5208',
    'to': '0x' + '35' * 20,
    'value': '0xde0b6b3a7640000',
    'input': '0x',
    'v': '0x25',
    'r': '0x28ef61340bd939bc2195fe537567866003e1a15d3c71ff63e1590620aa636276',
    's': '0x67cbe9d8997f761aecb703304b3800ccf555c9f3dc64214b297fb1966a3b6d83',
}

RECEIPT_JSON = {
    'transactionHash': '0x' + '22' * 32,
    'blockHash': '0x' + '11' * 32,
    'blockNumber': '0x10',
    'transactionIndex': '0x1',
    'cumulativeGasUsed': '0xa410',
    'gasUsed': '0x5208',
    'contractAddress': '0x' + 'ab' * 20,
    'status': '0x1',
    'logs': [],
}
