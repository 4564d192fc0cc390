"""
Blockchain Interaction Package
Data model, ABI handling, deployment and contract calls

Deployer, proxy and sender modules depend on utils.network_connection and
are imported from their own modules.
"""

from .abi import decode_return, encode_call, parse_abi
from .errors import (
    ArtifactNotFoundError,
    CallRevertedError,
    CompilationError,
    DecodingError,
    EncodingError,
    PipelineError,
    RevertError,
    SimulationError,
    SubmissionError,
    TransactionTimeoutError,
)
from .models import (
    CompiledArtifact,
    DeployedContractRef,
    FunctionDescriptor,
    PendingCall,
    SourceUnit,
    TransactionOutcome,
)

__all__ = [
    'parse_abi',
    'encode_call',
    'decode_return',
    'PipelineError',
    'CompilationError',
    'ArtifactNotFoundError',
    'EncodingError',
    'DecodingError',
    'SimulationError',
    'RevertError',
    'CallRevertedError',
    'SubmissionError',
    'TransactionTimeoutError',
    'SourceUnit',
    'CompiledArtifact',
    'FunctionDescriptor',
    'DeployedContractRef',
    'PendingCall',
    'TransactionOutcome'
]
