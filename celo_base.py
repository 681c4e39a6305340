#!/usr/bin/env python3
"""
Celo Governance Tools - Base Class

Base class providing common functionality for all Celo governance tools.
"""

from typing import Optional
from abc import ABC

from celo_utils import DEFAULT_NETWORK_URL, EXPLORER_BASE, RPC_TIMEOUT_DEFAULT


class CeloTool(ABC):
    """
    Base class for all Celo governance tools.

    Provides common initialization and shared functionality.
    """

    def __init__(self, network_url: Optional[str] = None,
                 explorer_base: Optional[str] = None) -> None:
        """
        Initialize the Celo tool.

        Args:
            network_url: Optional node RPC URL (defaults to DEFAULT_NETWORK_URL)
            explorer_base: Optional block explorer base URL (defaults to EXPLORER_BASE)
        """
        self.network_url: str = network_url or DEFAULT_NETWORK_URL
        self.explorer_base: str = (explorer_base or EXPLORER_BASE).rstrip('/')

    def get_rpc_timeout(self) -> int:
        """RPC timeout in seconds handed to the HTTP provider"""
        return RPC_TIMEOUT_DEFAULT

    def address_url(self, address: str) -> str:
        """Block explorer link for an account or contract"""
        return f"{self.explorer_base}/address/{address}"

    def tx_url(self, tx_hash: str) -> str:
        """Block explorer link for a transaction"""
        return f"{self.explorer_base}/tx/{tx_hash}"

    def __repr__(self) -> str:
        """String representation of the tool"""
        return f"{self.__class__.__name__}(network={self.network_url})"
