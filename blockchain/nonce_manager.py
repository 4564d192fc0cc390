"""
Nonce Manager
Serializes transaction sequence numbers per sender
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Dict, Optional

from loguru import logger
from web3 import Web3

from utils.network_connection import NetworkConnection


class NonceManager:
    """
    Allocates nonces so concurrent writes from one sender never collide

    The sender's lock is held from allocation through broadcast. A failed
    broadcast drops the cached counter so the next reservation resyncs from
    the node. Nothing is ever resubmitted here.
    """

    def __init__(self, connection: NetworkConnection):
        """
        Initialize Nonce Manager

        Args:
            connection: Network connection handle
        """
        self.connection = connection

        # Internal nonce tracking, keyed by checksum address
        self.next_nonces: Dict[str, int] = {}
        self.locks: Dict[str, asyncio.Lock] = {}

        if connection.nonce_manager is None:
            connection.nonce_manager = self

    @classmethod
    def for_connection(cls, connection: NetworkConnection) -> "NonceManager":
        """
        The connection's shared manager, created on first use

        Deployers and proxies built without an explicit manager all land
        here, so one sender never holds two independent counters.
        """
        if connection.nonce_manager is None:
            connection.nonce_manager = cls(connection)
        return connection.nonce_manager

    def _lock_for(self, address: str) -> asyncio.Lock:
        if address not in self.locks:
            self.locks[address] = asyncio.Lock()
        return self.locks[address]

    async def _sync_nonce(self, address: str) -> int:
        # Include pending transactions
        nonce = await self.connection.get_transaction_count(address, 'pending')
        self.next_nonces[address] = nonce
        logger.debug(f"Nonce synced for {address}: {nonce}")
        return nonce

    @asynccontextmanager
    async def reserve(self, address: str):
        """
        Reserve the next nonce for `address`

        Usage:
            async with nonce_manager.reserve(sender.address) as nonce:
                ...build and broadcast...
        """
        address = Web3.to_checksum_address(address)

        async with self._lock_for(address):
            if address in self.next_nonces:
                nonce = self.next_nonces[address]
            else:
                nonce = await self._sync_nonce(address)

            try:
                yield nonce
            except BaseException:
                self.next_nonces.pop(address, None)
                logger.warning(f"Broadcast with nonce {nonce} failed for {address}; will resync")
                raise

            self.next_nonces[address] = nonce + 1
            logger.debug(f"Nonce {nonce} used by {address}")

    async def resync(self, address: str) -> int:
        """Force sync with the node (use after transactions sent outside this manager)"""
        address = Web3.to_checksum_address(address)
        async with self._lock_for(address):
            return await self._sync_nonce(address)

    def get_current_nonce(self, address: str) -> Optional[int]:
        """Next nonce that would be used (without reserving), None if never synced"""
        return self.next_nonces.get(Web3.to_checksum_address(address))
