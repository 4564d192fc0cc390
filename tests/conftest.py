"""
Shared fixtures: SimpleStorage ABI, a mocked Web3 and a connection around it
"""

from unittest.mock import Mock

import pytest
from eth_abi import encode
from hexbytes import HexBytes
from web3 import Web3

from blockchain.models import CompiledArtifact, DeployedContractRef
from blockchain.nonce_manager import NonceManager
from blockchain.wallet_manager import NodeAccountSender
from utils.network_connection import NetworkConnection

OWNER = '0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266'
OTHER = '0x70997970C51812dc3A010C7d01b50e0d17dc79C8'
CONTRACT = '0x5FbDB2315678afecb367f032d93F642f64180aa3'
TX_HASH = '0x' + 'ab' * 32
CHAIN_ID = 1337

# Not real EVM code; only its bytes matter to the pipeline
BYTECODE = bytes.fromhex('6080604052348015600f57600080fd5b50')

SIMPLE_STORAGE_ABI = [
    {
        "inputs": [{"internalType": "uint256", "name": "initialValue", "type": "uint256"}],
        "stateMutability": "nonpayable",
        "type": "constructor"
    },
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "internalType": "address", "name": "setter", "type": "address"},
            {"indexed": False, "internalType": "uint256", "name": "value", "type": "uint256"}
        ],
        "name": "DataChanged",
        "type": "event"
    },
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "internalType": "address", "name": "from", "type": "address"},
            {"indexed": False, "internalType": "uint256", "name": "amount", "type": "uint256"}
        ],
        "name": "Deposited",
        "type": "event"
    },
    {
        "inputs": [],
        "name": "deposit",
        "outputs": [],
        "stateMutability": "payable",
        "type": "function"
    },
    {
        "inputs": [],
        "name": "get",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [],
        "name": "getBalance",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [],
        "name": "owner",
        "outputs": [{"internalType": "address", "name": "", "type": "address"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [{"internalType": "uint256", "name": "x", "type": "uint256"}],
        "name": "set",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function"
    },
    {
        "inputs": [],
        "name": "storedData",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [],
        "name": "withdraw",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function"
    },
    {
        "stateMutability": "payable",
        "type": "receive"
    }
]


def make_receipt(status=1, contract_address=None, logs=None, gas_used=90_000, block_number=5):
    """Receipt shaped like web3's AttributeDict"""
    return {
        'transactionHash': HexBytes(TX_HASH),
        'status': status,
        'blockNumber': block_number,
        'gasUsed': gas_used,
        'effectiveGasPrice': 10 ** 9,
        'contractAddress': contract_address,
        'logs': logs or []
    }


def encode_uint(value):
    return encode(['uint256'], [value])


def revert_data(reason):
    """Error(string) revert payload"""
    return '0x08c379a0' + encode(['string'], [reason]).hex()


def data_changed_log(setter, value, address=CONTRACT):
    topic = Web3.keccak(text='DataChanged(address,uint256)')
    return {
        'address': address,
        'topics': [topic, HexBytes(bytes(12) + bytes.fromhex(setter[2:]))],
        'data': HexBytes(encode_uint(value)),
        'logIndex': 0
    }


@pytest.fixture
def w3():
    """Mock Web3 instance behaving like a healthy development node"""
    w3 = Mock()
    w3.eth.chain_id = CHAIN_ID
    w3.eth.gas_price = 10 ** 9
    w3.eth.accounts = [OWNER, OTHER]
    w3.eth.get_transaction_count.return_value = 0
    w3.eth.get_balance.return_value = 10 ** 18
    w3.eth.estimate_gas.return_value = 100_000
    w3.eth.send_transaction.return_value = HexBytes(TX_HASH)
    w3.eth.send_raw_transaction.return_value = HexBytes(TX_HASH)
    w3.eth.wait_for_transaction_receipt.return_value = make_receipt()
    w3.eth.call.return_value = encode_uint(1)
    w3.is_connected.return_value = True
    return w3


@pytest.fixture
def connection(w3):
    return NetworkConnection(w3=w3, receipt_timeout=5, poll_latency=0)


@pytest.fixture
def nonce_manager(connection):
    return NonceManager(connection)


@pytest.fixture
def owner():
    return NodeAccountSender(OWNER)


@pytest.fixture
def other():
    return NodeAccountSender(OTHER)


@pytest.fixture
def artifact():
    return CompiledArtifact(
        contract_name='SimpleStorage',
        bytecode=BYTECODE,
        abi=SIMPLE_STORAGE_ABI,
        source_hash='deadbeef',
        compiler_version='0.8.20'
    )


@pytest.fixture
def deployed_ref():
    return DeployedContractRef(address=CONTRACT, abi=SIMPLE_STORAGE_ABI, contract_name='SimpleStorage')
