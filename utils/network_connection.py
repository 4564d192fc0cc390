"""
Network Connection
Explicit handle to one JSON-RPC endpoint, plus mapping of web3 failures to pipeline errors
"""

import re
from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Type

import requests
from loguru import logger
from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted, Web3Exception

from blockchain.abi import decode_revert_reason
from blockchain.errors import (
    CallRevertedError,
    ConfigError,
    PipelineError,
    SubmissionError,
    TransactionTimeoutError,
)

# Failures raised by web3 / the HTTP transport that should surface as typed errors
RPC_FAILURES = (Web3Exception, requests.exceptions.RequestException, ValueError)

_REVERT_PREFIX = 'execution reverted'
_HARDHAT_REASON = re.compile(r"reverted with reason string '(.*)'", re.DOTALL)


def extract_revert_reason(exc: BaseException) -> Optional[str]:
    """
    Best-effort revert reason from a web3 exception

    Prefers decoding the raw revert data; falls back to parsing the node's
    message. Returns None when the contract reverted without a reason.
    """
    data = getattr(exc, 'data', None)
    if isinstance(data, dict):
        data = data.get('data')
    if isinstance(data, (str, bytes)):
        try:
            reason = decode_revert_reason(data)
        except ValueError:
            reason = None
        if reason:
            return reason

    message = getattr(exc, 'message', None) or str(exc)

    match = _HARDHAT_REASON.search(message)
    if match:
        return match.group(1)

    if _REVERT_PREFIX in message:
        reason = message.split(_REVERT_PREFIX, 1)[1].lstrip(':').strip()
        return reason or None

    return None


def _looks_like_revert(exc: BaseException) -> bool:
    message = str(exc).lower()
    return 'revert' in message


def translate_error(
    exc: BaseException,
    label: str,
    revert_error: Type[PipelineError] = CallRevertedError,
    tx_hash: Optional[str] = None
) -> PipelineError:
    """
    Map a web3/transport exception to a PipelineError

    Args:
        exc: Original exception
        label: Operation name used in the error detail
        revert_error: Error class for remote rejections in this context
        tx_hash: Hash of the transaction involved, if already broadcast

    Returns:
        PipelineError instance (not raised)
    """
    if isinstance(exc, PipelineError):
        return exc

    if isinstance(exc, ContractLogicError) or (isinstance(exc, RPC_FAILURES) and _looks_like_revert(exc)):
        return revert_error(f"{label} reverted", reason=extract_revert_reason(exc), tx_hash=tx_hash)

    if isinstance(exc, (requests.exceptions.Timeout, TimeExhausted)):
        return TransactionTimeoutError(f"{label} timed out: {exc}", tx_hash=tx_hash)

    return SubmissionError(f"{label} failed: {exc}", tx_hash=tx_hash)


@contextmanager
def rpc_call(label: str, revert_error: Type[PipelineError] = CallRevertedError, tx_hash: Optional[str] = None):
    """Re-raise web3/transport failures inside the block as typed pipeline errors"""
    try:
        yield
    except RPC_FAILURES as e:
        error = translate_error(e, label, revert_error, tx_hash)
        logger.debug(f"{label}: {type(e).__name__} -> {error.kind}: {error}")
        raise error from e


class NetworkConnection:
    """
    Handle to a single network endpoint

    Nothing here is global: create one per endpoint (or per test, with an
    injected Web3 instance) and pass it to the components that need it.
    """

    def __init__(
        self,
        rpc_url: Optional[str] = None,
        request_timeout: float = 30,
        receipt_timeout: float = 120,
        poll_latency: float = 0.5,
        w3: Optional[Web3] = None
    ):
        """
        Initialize Network Connection

        Args:
            rpc_url: HTTP JSON-RPC endpoint
            request_timeout: Per-request timeout in seconds
            receipt_timeout: Maximum seconds to wait for a transaction receipt
            poll_latency: Seconds between receipt polls
            w3: Pre-built Web3 instance (overrides rpc_url)
        """
        if request_timeout <= 0 or receipt_timeout <= 0:
            raise ConfigError("Timeouts must be positive")

        if w3 is None:
            if not rpc_url:
                raise ConfigError("rpc_url is required when no Web3 instance is given")
            # no transport-level retries: a timeout surfaces once, as TransactionTimeoutError
            w3 = Web3(Web3.HTTPProvider(
                rpc_url,
                request_kwargs={'timeout': request_timeout},
                exception_retry_configuration=None
            ))

        self.w3 = w3
        self.rpc_url = rpc_url
        self.request_timeout = request_timeout
        self.receipt_timeout = receipt_timeout
        self.poll_latency = poll_latency

        # Shared by every writer on this connection (see NonceManager.for_connection)
        self.nonce_manager = None

        logger.debug(f"Network connection created for {rpc_url or 'injected provider'}")

    @classmethod
    def from_config(cls, config: Dict) -> "NetworkConnection":
        network = config['network']
        return cls(
            rpc_url=network['rpc_url'],
            request_timeout=network['request_timeout'],
            receipt_timeout=network['receipt_timeout'],
            poll_latency=network['poll_latency']
        )

    def is_connected(self) -> bool:
        return self.w3.is_connected()

    def check_connected(self):
        """Raise SubmissionError if the endpoint does not answer"""
        if not self.is_connected():
            raise SubmissionError(f"Cannot reach network endpoint {self.rpc_url}")

    async def chain_id(self) -> int:
        with rpc_call('eth_chainId'):
            return self.w3.eth.chain_id

    async def accounts(self) -> List[str]:
        with rpc_call('eth_accounts'):
            return list(self.w3.eth.accounts)

    async def get_balance(self, address: str, block_identifier: Any = 'latest') -> int:
        """
        Get native balance in wei

        Args:
            address: Account or contract address
            block_identifier: Block number/tag to read at

        Returns:
            Balance in wei
        """
        with rpc_call('eth_getBalance'):
            return self.w3.eth.get_balance(Web3.to_checksum_address(address), block_identifier)

    async def get_transaction_count(self, address: str, block_identifier: Any = 'pending') -> int:
        with rpc_call('eth_getTransactionCount'):
            return self.w3.eth.get_transaction_count(Web3.to_checksum_address(address), block_identifier)

    async def gas_price(self) -> int:
        with rpc_call('eth_gasPrice'):
            return self.w3.eth.gas_price

    async def wait_for_receipt(self, tx_hash: str, label: str = 'transaction'):
        """
        Block until the transaction is mined

        Raises:
            TransactionTimeoutError: receipt not seen within receipt_timeout
            SubmissionError: RPC failure while polling
        """
        with rpc_call(f"{label} confirmation", tx_hash=tx_hash):
            return self.w3.eth.wait_for_transaction_receipt(
                tx_hash,
                timeout=self.receipt_timeout,
                poll_latency=self.poll_latency
            )
