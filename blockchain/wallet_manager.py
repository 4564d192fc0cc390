"""
Wallet Manager
Sender identities used to authorize write operations
"""

import os
from typing import Dict, Optional

from eth_account import Account
from hexbytes import HexBytes
from loguru import logger
from web3 import Web3

from utils.network_connection import NetworkConnection, rpc_call
from .errors import ConfigError, RevertError


class SenderIdentity:
    """
    Opaque capability to submit transactions from one address

    Subclasses decide where signing happens.
    """

    address: str

    async def submit(self, connection: NetworkConnection, transaction: Dict, label: str = 'transaction') -> str:
        """
        Broadcast a fully-populated transaction

        Args:
            connection: Network connection handle
            transaction: Transaction dict including nonce and gas
            label: Operation name for logs/errors

        Returns:
            Transaction hash (0x-prefixed hex)
        """
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.address})"


class LocalAccountSender(SenderIdentity):
    """Signs in-process with a private key and sends the raw transaction"""

    def __init__(self, private_key: str):
        self.account = Account.from_key(private_key)
        self.address = self.account.address

    async def submit(self, connection: NetworkConnection, transaction: Dict, label: str = 'transaction') -> str:
        signed = self.account.sign_transaction(transaction)

        with rpc_call(f"{label} submission", revert_error=RevertError):
            tx_hash = connection.w3.eth.send_raw_transaction(signed.raw_transaction)

        return Web3.to_hex(HexBytes(tx_hash))


class NodeAccountSender(SenderIdentity):
    """Uses an account unlocked on the node (eth_sendTransaction)"""

    def __init__(self, address: str):
        self.address = Web3.to_checksum_address(address)

    async def submit(self, connection: NetworkConnection, transaction: Dict, label: str = 'transaction') -> str:
        with rpc_call(f"{label} submission", revert_error=RevertError):
            tx_hash = connection.w3.eth.send_transaction(transaction)

        return Web3.to_hex(HexBytes(tx_hash))


class WalletManager:
    """
    Resolves sender identities from configuration

    A PRIVATE_KEY in the environment wins; otherwise the node account at the
    configured index is used (local development chains).
    """

    def __init__(self, private_key: Optional[str] = None, account_index: int = 0):
        """
        Initialize wallet manager

        Args:
            private_key: Hex private key for a local signer
            account_index: Index into eth_accounts when no key is set
        """
        self.private_key = private_key
        self.account_index = account_index

    @classmethod
    def from_config(cls, config: Dict) -> "WalletManager":
        return cls(
            private_key=os.getenv('PRIVATE_KEY') or None,
            account_index=config['sender']['account_index']
        )

    async def get_sender(self, connection: NetworkConnection) -> SenderIdentity:
        """Default sender for deployments and writes"""
        if self.private_key:
            sender = LocalAccountSender(self.private_key)
            logger.info(f"Using local signer: {sender.address}")
            return sender

        return await self.get_node_account(connection, self.account_index)

    async def get_node_account(self, connection: NetworkConnection, index: int) -> NodeAccountSender:
        """
        Node-managed account by index

        Raises:
            ConfigError: the node exposes fewer accounts
        """
        accounts = await connection.accounts()

        if index >= len(accounts):
            raise ConfigError(f"Node exposes {len(accounts)} account(s); index {index} requested")

        sender = NodeAccountSender(accounts[index])
        logger.info(f"Using node account #{index}: {sender.address}")
        return sender
