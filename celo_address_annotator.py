#!/usr/bin/env python3
"""
Celo Address Annotator

Gives meaning to raw addresses found in decoded proposal parameters by naming
the core contract or registered account behind them.
"""

import re
from typing import Any, Dict, Iterable

from celo_utils import logger
from celo_governance_client import GovernanceClient, ContractDetails

ADDRESS_PATTERN = re.compile(r'^0x[0-9a-fA-F]{40}$')


def looks_like_address(token: Any) -> bool:
    """True for strings shaped like a raw 20-byte hex address"""
    return isinstance(token, str) and bool(ADDRESS_PATTERN.match(token))


class AddressAnnotator:
    """
    Resolves addresses to `contract:<name>:<address>` or
    `account:<name>:<address>` labels.

    Known contract names come from a pre-fetched registry snapshot; anything
    else costs one `is_account` lookup (plus a name lookup on a hit).
    """

    def __init__(self, client: GovernanceClient, contracts: Iterable[ContractDetails]) -> None:
        self.client = client
        self.contract_names: Dict[str, str] = {cd.address.lower(): cd.name for cd in contracts}

    def annotate(self, token: Any) -> Any:
        """Annotate one decoded value; anything not address-shaped is returned as is"""
        if not looks_like_address(token):
            return token

        name = self.contract_names.get(token.lower())
        if name:
            return f"contract:{name}:{token}"

        if self.client.is_account(token):
            account_name = self.client.get_account_name(token)
            logger.debug(f"{token} is account '{account_name}'")
            return f"account:{account_name}:{token}"

        return token
