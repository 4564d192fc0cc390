"""
Utilities Package
Network connection, simulation, configuration and logging
"""

from .config import load_config
from .network_connection import NetworkConnection
from .simulation import TransactionSimulator

__all__ = [
    'NetworkConnection',
    'TransactionSimulator',
    'load_config'
]
