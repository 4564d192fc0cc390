"""
Unit Tests for the network connection handle and error mapping
"""

from unittest.mock import patch

import pytest
import requests
from web3.exceptions import ContractLogicError, TimeExhausted

from blockchain.errors import (
    CallRevertedError,
    ConfigError,
    SimulationError,
    SubmissionError,
    TransactionTimeoutError,
)
from utils.network_connection import (
    NetworkConnection,
    extract_revert_reason,
    rpc_call,
    translate_error,
)
from tests.conftest import CHAIN_ID, OWNER, TX_HASH, revert_data


class TestRevertReasons:
    """Test reason extraction from node errors"""

    def test_from_revert_data(self):
        exc = ContractLogicError('execution reverted', data=revert_data('Only the owner can withdraw'))

        assert extract_revert_reason(exc) == 'Only the owner can withdraw'

    def test_from_message(self):
        exc = ContractLogicError('execution reverted: Only the owner can withdraw')

        assert extract_revert_reason(exc) == 'Only the owner can withdraw'

    def test_hardhat_message(self):
        exc = ValueError(
            "VM Exception while processing transaction: reverted with reason string 'Only the owner can withdraw'"
        )

        assert extract_revert_reason(exc) == 'Only the owner can withdraw'

    def test_no_reason(self):
        assert extract_revert_reason(ContractLogicError('execution reverted')) is None


class TestTranslateError:
    """Test mapping to typed pipeline errors"""

    def test_revert_uses_context_class(self):
        error = translate_error(ContractLogicError('execution reverted: nope'), 'set(uint256) simulation', SimulationError)

        assert isinstance(error, SimulationError)
        assert error.reason == 'nope'
        assert error.kind == 'simulation_error'

    def test_request_timeout(self):
        error = translate_error(requests.exceptions.ReadTimeout('read timed out'), 'eth_call')

        assert isinstance(error, TransactionTimeoutError)
        assert isinstance(error, TimeoutError)

    def test_receipt_timeout_keeps_hash(self):
        error = translate_error(TimeExhausted('not mined'), 'set confirmation', tx_hash=TX_HASH)

        assert isinstance(error, TransactionTimeoutError)
        assert error.tx_hash == TX_HASH

    def test_connection_failure(self):
        error = translate_error(requests.exceptions.ConnectionError('refused'), 'eth_chainId')

        assert isinstance(error, SubmissionError)
        assert 'refused' in error.detail

    def test_rpc_call_chains_original(self):
        with pytest.raises(CallRevertedError) as exc_info:
            with rpc_call('get()'):
                raise ContractLogicError('execution reverted: bad')

        assert isinstance(exc_info.value.__cause__, ContractLogicError)
        assert exc_info.value.to_dict() == {
            'kind': 'call_reverted',
            'detail': 'get() reverted',
            'reason': 'bad',
            'tx_hash': None
        }

    def test_programming_errors_not_wrapped(self):
        with pytest.raises(KeyError):
            with rpc_call('get()'):
                raise KeyError('oops')


class TestNetworkConnection:
    """Test the connection handle"""

    def test_requires_url_or_instance(self):
        with pytest.raises(ConfigError):
            NetworkConnection()

    def test_rejects_bad_timeouts(self, w3):
        with pytest.raises(ConfigError):
            NetworkConnection(w3=w3, receipt_timeout=0)

    def test_builds_http_provider(self):
        connection = NetworkConnection('http://127.0.0.1:8545', request_timeout=7)

        assert connection.rpc_url == 'http://127.0.0.1:8545'
        assert connection.w3.provider.endpoint_uri == 'http://127.0.0.1:8545'

    def test_independent_instances(self, w3):
        a = NetworkConnection(w3=w3)
        b = NetworkConnection('http://127.0.0.1:9545')

        assert a.w3 is not b.w3

    @pytest.mark.asyncio
    async def test_queries(self, connection, w3):
        assert await connection.chain_id() == CHAIN_ID
        assert await connection.get_balance(OWNER.lower()) == 10 ** 18

        w3.eth.get_balance.assert_called_with(OWNER, 'latest')

    @pytest.mark.asyncio
    async def test_receipt_timeout(self, connection, w3):
        w3.eth.wait_for_transaction_receipt.side_effect = TimeExhausted('not mined')

        with pytest.raises(TransactionTimeoutError) as exc_info:
            await connection.wait_for_receipt(TX_HASH, 'set(uint256)')

        assert exc_info.value.tx_hash == TX_HASH
        w3.eth.wait_for_transaction_receipt.assert_called_with(TX_HASH, timeout=5, poll_latency=0)

    def test_check_connected(self, connection, w3):
        w3.is_connected.return_value = False

        with pytest.raises(SubmissionError):
            connection.check_connected()

    def test_transport_retries_disabled(self):
        connection = NetworkConnection('http://127.0.0.1:8545')

        assert connection.w3.provider.exception_retry_configuration is None

    @pytest.mark.asyncio
    async def test_request_timeout_surfaces_once(self):
        connection = NetworkConnection('http://127.0.0.1:8545', request_timeout=0.2)

        with patch.object(requests.Session, 'post', side_effect=requests.exceptions.ReadTimeout('timed out')) as post:
            with pytest.raises(TransactionTimeoutError):
                await connection.get_balance(OWNER)

        assert post.call_count == 1
