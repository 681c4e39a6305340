#!/usr/bin/env python3
"""
Celo Governance Tools - Contract ABIs

Literal ABI fragments for the core contracts the governance tools read from,
and loading of the full core contract ABIs bundled under ``celo_abis/`` so
proposal transactions can be decoded. Extra ABIs can be dropped into a
directory as ``<ContractName>.json`` (plain ABI list or a truffle artifact
with an ``abi`` key); their fragments take precedence over the bundled ones.
"""

import json
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from celo_utils import logger

# The registry lives at a fixed address on every Celo network
REGISTRY_ADDRESS = "0x000000000000000000000000000000000000ce10"
NULL_ADDRESS = "0x0000000000000000000000000000000000000000"

# Names the core contracts are registered under in the Registry
REGISTERED_CONTRACTS = [
    'Accounts',
    'Attestations',
    'BlockchainParameters',
    'DoubleSigningSlasher',
    'DowntimeSlasher',
    'Election',
    'EpochRewards',
    'Escrow',
    'Exchange',
    'ExchangeEUR',
    'FeeCurrencyWhitelist',
    'Freezer',
    'GasPriceMinimum',
    'GoldToken',
    'Governance',
    'GovernanceApproverMultiSig',
    'GovernanceSlasher',
    'LockedGold',
    'Random',
    'Reserve',
    'ReserveSpenderMultiSig',
    'SortedOracles',
    'StableToken',
    'StableTokenEUR',
    'Validators',
]

REGISTRY_ABI = [
    {
        "inputs": [{"internalType": "string", "name": "identifier", "type": "string"}],
        "name": "getAddressForString",
        "outputs": [{"internalType": "address", "name": "", "type": "address"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [
            {"internalType": "string", "name": "identifier", "type": "string"},
            {"internalType": "address", "name": "addr", "type": "address"}
        ],
        "name": "setAddressFor",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function"
    },
]

GOVERNANCE_ABI = [
    {
        "inputs": [{"internalType": "uint256", "name": "proposalId", "type": "uint256"}],
        "name": "getProposal",
        "outputs": [
            {"internalType": "address", "name": "", "type": "address"},
            {"internalType": "uint256", "name": "", "type": "uint256"},
            {"internalType": "uint256", "name": "", "type": "uint256"},
            {"internalType": "uint256", "name": "", "type": "uint256"},
            {"internalType": "string", "name": "", "type": "string"}
        ],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [
            {"internalType": "uint256", "name": "proposalId", "type": "uint256"},
            {"internalType": "uint256", "name": "index", "type": "uint256"}
        ],
        "name": "getProposalTransaction",
        "outputs": [
            {"internalType": "uint256", "name": "", "type": "uint256"},
            {"internalType": "address", "name": "", "type": "address"},
            {"internalType": "bytes", "name": "", "type": "bytes"}
        ],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [{"internalType": "uint256", "name": "proposalId", "type": "uint256"}],
        "name": "getProposalStage",
        "outputs": [{"internalType": "enum Proposals.Stage", "name": "", "type": "uint8"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [],
        "name": "stageDurations",
        "outputs": [
            {"internalType": "uint256", "name": "approval", "type": "uint256"},
            {"internalType": "uint256", "name": "referendum", "type": "uint256"},
            {"internalType": "uint256", "name": "execution", "type": "uint256"}
        ],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [{"internalType": "uint256", "name": "proposalId", "type": "uint256"}],
        "name": "getVoteTotals",
        "outputs": [
            {"internalType": "uint256", "name": "", "type": "uint256"},
            {"internalType": "uint256", "name": "", "type": "uint256"},
            {"internalType": "uint256", "name": "", "type": "uint256"}
        ],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [{"internalType": "uint256", "name": "proposalId", "type": "uint256"}],
        "name": "getUpvotes",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [{"internalType": "uint256", "name": "proposalId", "type": "uint256"}],
        "name": "isApproved",
        "outputs": [{"internalType": "bool", "name": "", "type": "bool"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [{"internalType": "uint256", "name": "proposalId", "type": "uint256"}],
        "name": "isProposalPassing",
        "outputs": [{"internalType": "bool", "name": "", "type": "bool"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [],
        "name": "getParticipationParameters",
        "outputs": [
            {"internalType": "uint256", "name": "", "type": "uint256"},
            {"internalType": "uint256", "name": "", "type": "uint256"},
            {"internalType": "uint256", "name": "", "type": "uint256"},
            {"internalType": "uint256", "name": "", "type": "uint256"}
        ],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [
            {"internalType": "address", "name": "destination", "type": "address"},
            {"internalType": "bytes4", "name": "functionId", "type": "bytes4"}
        ],
        "name": "getConstitution",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [],
        "name": "getQueue",
        "outputs": [
            {"internalType": "uint256[]", "name": "", "type": "uint256[]"},
            {"internalType": "uint256[]", "name": "", "type": "uint256[]"}
        ],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [],
        "name": "getDequeue",
        "outputs": [{"internalType": "uint256[]", "name": "", "type": "uint256[]"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [{"internalType": "uint256", "name": "proposalId", "type": "uint256"}],
        "name": "isQueuedProposalExpired",
        "outputs": [{"internalType": "bool", "name": "", "type": "bool"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [{"internalType": "uint256", "name": "proposalId", "type": "uint256"}],
        "name": "isDequeuedProposalExpired",
        "outputs": [{"internalType": "bool", "name": "", "type": "bool"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "internalType": "uint256", "name": "proposalId", "type": "uint256"},
            {"indexed": True, "internalType": "address", "name": "proposer", "type": "address"},
            {"indexed": False, "internalType": "uint256", "name": "transactionCount", "type": "uint256"},
            {"indexed": False, "internalType": "uint256", "name": "deposit", "type": "uint256"},
            {"indexed": False, "internalType": "uint256", "name": "timestamp", "type": "uint256"}
        ],
        "name": "ProposalQueued",
        "type": "event"
    },
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "internalType": "uint256", "name": "proposalId", "type": "uint256"}
        ],
        "name": "ProposalExecuted",
        "type": "event"
    },
]

# Event signatures used to filter raw logs by topic
GOVERNANCE_EVENT_SIGNATURES = {
    'ProposalQueued': 'ProposalQueued(uint256,address,uint256,uint256,uint256)',
    'ProposalExecuted': 'ProposalExecuted(uint256)',
}

LOCKED_GOLD_ABI = [
    {
        "inputs": [],
        "name": "getTotalLockedGold",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function"
    },
]

ACCOUNTS_ABI = [
    {
        "inputs": [{"internalType": "address", "name": "account", "type": "address"}],
        "name": "isAccount",
        "outputs": [{"internalType": "bool", "name": "", "type": "bool"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [{"internalType": "address", "name": "account", "type": "address"}],
        "name": "getName",
        "outputs": [{"internalType": "string", "name": "", "type": "string"}],
        "stateMutability": "view",
        "type": "function"
    },
]


def _function(name: str, inputs: List[Tuple[str, str]]) -> Dict:
    """Build a nonpayable function fragment from (type, name) pairs"""
    return {
        "inputs": [{"internalType": t, "name": n, "type": t} for t, n in inputs],
        "name": name,
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function"
    }


# Every core contract sits behind a Proxy; proposals upgrade them through it
PROXY_ABI = [
    _function('_setImplementation', [('address', 'implementation')]),
    _function('_setAndInitializeImplementation', [('address', 'implementation'), ('bytes', 'callbackData')]),
    _function('_transferOwnership', [('address', 'newOwner')]),
]

BUILTIN_ABIS = {
    'Registry': REGISTRY_ABI,
    'Governance': GOVERNANCE_ABI,
    'LockedGold': LOCKED_GOLD_ABI,
    'Accounts': ACCOUNTS_ABI,
}

# Full core contract ABIs shipped with the tools, one <ContractName>.json each
BUNDLED_ABI_DIR = Path(__file__).resolve().parent / 'celo_abis'


def _signature(fragment: Dict) -> Tuple[str, Tuple[str, ...]]:
    return fragment.get('name', ''), tuple(i.get('type', '') for i in fragment.get('inputs', []))


def merge_abis(*abis: List[Dict]) -> List[Dict]:
    """Concatenate ABIs, keeping the first fragment for each function/event signature"""
    merged = []
    seen = set()
    for abi in abis:
        for fragment in abi:
            key = (fragment.get('type'),) + _signature(fragment)
            if key in seen:
                continue
            seen.add(key)
            merged.append(fragment)
    return merged


def load_abi_dir(abi_dir: Optional[str]) -> Dict[str, List[Dict]]:
    """
    Load ``<ContractName>.json`` ABI files from a directory.

    Files that cannot be parsed are skipped with a warning.
    """
    if not abi_dir:
        return {}

    path = Path(abi_dir)
    if not path.is_dir():
        logger.warning(f"ABI directory {abi_dir} does not exist")
        return {}

    abis = {}
    for abi_file in sorted(path.glob('*.json')):
        try:
            with open(abi_file, 'r') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Could not load ABI file {abi_file}: {e}")
            continue
        if isinstance(data, dict):
            data = data.get('abi', [])
        if not isinstance(data, list):
            logger.warning(f"ABI file {abi_file} does not contain an ABI list")
            continue
        abis[abi_file.stem] = data
        logger.debug(f"Loaded ABI for {abi_file.stem} from {abi_file}")
    return abis


def load_abis(abi_dir: Optional[str] = None) -> Dict[str, List[Dict]]:
    """
    ABIs of the core contracts keyed by registry name.

    Starts from the bundled ABIs; files in ``abi_dir`` are merged over them,
    their fragments winning where a signature appears in both.
    """
    abis = load_abi_dir(str(BUNDLED_ABI_DIR))
    for name, abi in load_abi_dir(abi_dir).items():
        abis[name] = merge_abis(abi, abis.get(name, []))
    return abis


def get_contract_abi(name: str, abis: Optional[Dict[str, List[Dict]]] = None) -> List[Dict]:
    """
    ABI used to decode calls made to a registered contract.

    The Proxy ABI is always merged in since every core contract is deployed
    behind one.
    """
    abis = abis or {}
    return merge_abis(abis.get(name, []), BUILTIN_ABIS.get(name, []), PROXY_ABI)
