"""
Compiler Package
Solidity compilation and the on-disk artifact store
"""

from .artifact_store import ArtifactStore
from .solc_adapter import SolcCompiler

__all__ = ['SolcCompiler', 'ArtifactStore']
