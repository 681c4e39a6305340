#!/usr/bin/env python3
"""
Celo Governance Client

Narrow read interface over the Celo Governance, LockedGold, Accounts and
Registry contracts, plus the web3.py implementation used by the CLI.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import requests
from web3 import Web3
from web3.exceptions import Web3Exception

from celo_utils import (
    NetworkError, ContractNotFoundError, from_fixed, logger
)
from celo_base import CeloTool
from celo_contracts import (
    REGISTRY_ADDRESS, NULL_ADDRESS, REGISTERED_CONTRACTS, REGISTRY_ABI,
    GOVERNANCE_ABI, GOVERNANCE_EVENT_SIGNATURES, LOCKED_GOLD_ABI, ACCOUNTS_ABI
)


class Stage(Enum):
    """Lifecycle stage of a governance proposal"""
    QUEUED = 'Queued'
    APPROVAL = 'Approval'
    REFERENDUM = 'Referendum'
    EXECUTION = 'Execution'
    EXPIRATION = 'Expiration'

    @classmethod
    def from_contract(cls, value: int) -> 'Stage':
        """
        Map the Governance contract's Proposals.Stage enum onto Stage.

        Stage.None (0) means the proposal is not stored on chain any more:
        either it was executed and deleted, or it never existed. Both are
        resolved from the event history, so they are treated as Expiration.
        """
        ordered = [None, cls.QUEUED, cls.APPROVAL, cls.REFERENDUM, cls.EXECUTION, cls.EXPIRATION]
        value = int(value)
        if value < 0 or value >= len(ordered):
            raise ValueError(f"Unknown proposal stage {value}")
        return ordered[value] or cls.EXPIRATION

    def __str__(self) -> str:
        return self.value


@dataclass
class ProposalMetadata:
    """Proposal record as stored by the Governance contract"""
    proposer: str
    deposit: int
    timestamp: int
    transaction_count: int
    description_url: str


@dataclass
class RawTransaction:
    """One encoded call of a proposal"""
    value: int
    destination: str
    data: bytes


@dataclass
class StageDurations:
    """Fixed per-stage durations in seconds"""
    approval: int
    referendum: int
    execution: int


@dataclass
class VoteTotals:
    yes: int
    no: int
    abstain: int

    @property
    def total(self) -> int:
        return self.yes + self.no + self.abstain


@dataclass
class ParticipationParameters:
    """Quorum parameters, already converted from Fixidity fractions"""
    baseline: Decimal
    baseline_floor: Decimal
    baseline_update_factor: Decimal
    baseline_quorum_factor: Decimal


@dataclass
class QueueEntry:
    proposal_id: int
    upvotes: int


@dataclass
class ContractDetails:
    """A core contract known to the registry"""
    name: str
    address: str


@dataclass
class EventRecord:
    """A decoded Governance event log"""
    event: str
    proposal_id: int
    block_number: int
    transaction_hash: str
    args: Dict[str, Any] = field(default_factory=dict)


class GovernanceClient(ABC):
    """Read operations the governance tools need from a Celo node"""

    @abstractmethod
    def get_proposal(self, proposal_id: int) -> ProposalMetadata:
        pass

    @abstractmethod
    def get_proposal_transactions(self, proposal_id: int, count: int) -> List[RawTransaction]:
        pass

    @abstractmethod
    def get_proposal_stage(self, proposal_id: int) -> Stage:
        pass

    @abstractmethod
    def get_stage_durations(self) -> StageDurations:
        pass

    @abstractmethod
    def get_vote_totals(self, proposal_id: int) -> VoteTotals:
        pass

    @abstractmethod
    def get_upvotes(self, proposal_id: int) -> int:
        pass

    @abstractmethod
    def is_approved(self, proposal_id: int) -> bool:
        pass

    @abstractmethod
    def is_passing(self, proposal_id: int) -> bool:
        pass

    @abstractmethod
    def get_participation_parameters(self) -> ParticipationParameters:
        pass

    @abstractmethod
    def get_constitution(self, destination: str, function_id: bytes) -> Decimal:
        """Approval threshold for calls to `function_id` on `destination`"""
        pass

    @abstractmethod
    def get_queue(self) -> List[QueueEntry]:
        pass

    @abstractmethod
    def get_dequeue(self) -> List[int]:
        """Dequeued proposal IDs, empty slots removed"""
        pass

    @abstractmethod
    def is_queued_proposal_expired(self, proposal_id: int) -> bool:
        pass

    @abstractmethod
    def is_dequeued_proposal_expired(self, proposal_id: int) -> bool:
        pass

    @abstractmethod
    def get_total_locked_gold(self) -> int:
        pass

    @abstractmethod
    def is_account(self, address: str) -> bool:
        pass

    @abstractmethod
    def get_account_name(self, address: str) -> str:
        pass

    @abstractmethod
    def get_contract_details(self) -> List[ContractDetails]:
        pass

    @abstractmethod
    def get_past_events(self, event_name: str, from_block: int = 0) -> List[EventRecord]:
        """Governance events of one kind, in emission order"""
        pass


class Web3GovernanceClient(CeloTool, GovernanceClient):
    """GovernanceClient backed by a web3.py HTTP connection to a Celo node"""

    def __init__(self, network_url: Optional[str] = None,
                 explorer_base: Optional[str] = None,
                 w3: Optional[Web3] = None) -> None:
        super().__init__(network_url, explorer_base)

        if w3 is None:
            w3 = Web3(Web3.HTTPProvider(
                self.network_url,
                request_kwargs={'timeout': self.get_rpc_timeout()}
            ))
            if not w3.is_connected():
                raise NetworkError(f"Failed to connect to Celo node: {self.network_url}")
            logger.info(f"Connected to Celo node at {self.network_url}")
        self.w3 = w3

        self.registry = self.w3.eth.contract(
            address=Web3.to_checksum_address(REGISTRY_ADDRESS),
            abi=REGISTRY_ABI
        )
        self._contracts: Dict[str, Any] = {}

    def _call(self, description: str, fn: Callable[[], Any]) -> Any:
        """Run a node request, wrapping client library failures as NetworkError"""
        try:
            return fn()
        except (requests.RequestException, Web3Exception, ValueError) as e:
            raise NetworkError(f"{description} failed: {e}", original_error=e)

    def _resolve(self, name: str) -> str:
        address = self._call(
            f"Registry lookup for {name}",
            lambda: self.registry.functions.getAddressForString(name).call()
        )
        return address

    def _contract(self, name: str, abi: List[Dict]):
        """Load (and cache) a registered contract binding"""
        if name not in self._contracts:
            address = self._resolve(name)
            if not address or int(address, 16) == 0:
                raise ContractNotFoundError(f"{name} is not registered on {self.network_url}")
            self._contracts[name] = self.w3.eth.contract(
                address=Web3.to_checksum_address(address),
                abi=abi
            )
            logger.debug(f"Loaded {name} contract: {address}")
        return self._contracts[name]

    @property
    def governance(self):
        return self._contract('Governance', GOVERNANCE_ABI)

    @property
    def locked_gold(self):
        return self._contract('LockedGold', LOCKED_GOLD_ABI)

    @property
    def accounts(self):
        return self._contract('Accounts', ACCOUNTS_ABI)

    def get_proposal(self, proposal_id: int) -> ProposalMetadata:
        proposer, deposit, timestamp, tx_count, description_url = self._call(
            f"getProposal({proposal_id})",
            lambda: self.governance.functions.getProposal(proposal_id).call()
        )
        return ProposalMetadata(
            proposer=proposer,
            deposit=int(deposit),
            timestamp=int(timestamp),
            transaction_count=int(tx_count),
            description_url=description_url
        )

    def get_proposal_transactions(self, proposal_id: int, count: int) -> List[RawTransaction]:
        transactions = []
        for index in range(count):
            value, destination, data = self._call(
                f"getProposalTransaction({proposal_id}, {index})",
                lambda: self.governance.functions.getProposalTransaction(proposal_id, index).call()
            )
            transactions.append(RawTransaction(value=int(value), destination=destination, data=bytes(data)))
        return transactions

    def get_proposal_stage(self, proposal_id: int) -> Stage:
        raw = self._call(
            f"getProposalStage({proposal_id})",
            lambda: self.governance.functions.getProposalStage(proposal_id).call()
        )
        return Stage.from_contract(raw)

    def get_stage_durations(self) -> StageDurations:
        approval, referendum, execution = self._call(
            "stageDurations()",
            lambda: self.governance.functions.stageDurations().call()
        )
        return StageDurations(approval=int(approval), referendum=int(referendum), execution=int(execution))

    def get_vote_totals(self, proposal_id: int) -> VoteTotals:
        yes, no, abstain = self._call(
            f"getVoteTotals({proposal_id})",
            lambda: self.governance.functions.getVoteTotals(proposal_id).call()
        )
        return VoteTotals(yes=int(yes), no=int(no), abstain=int(abstain))

    def get_upvotes(self, proposal_id: int) -> int:
        return int(self._call(
            f"getUpvotes({proposal_id})",
            lambda: self.governance.functions.getUpvotes(proposal_id).call()
        ))

    def is_approved(self, proposal_id: int) -> bool:
        return bool(self._call(
            f"isApproved({proposal_id})",
            lambda: self.governance.functions.isApproved(proposal_id).call()
        ))

    def is_passing(self, proposal_id: int) -> bool:
        return bool(self._call(
            f"isProposalPassing({proposal_id})",
            lambda: self.governance.functions.isProposalPassing(proposal_id).call()
        ))

    def get_participation_parameters(self) -> ParticipationParameters:
        baseline, floor, update_factor, quorum_factor = self._call(
            "getParticipationParameters()",
            lambda: self.governance.functions.getParticipationParameters().call()
        )
        return ParticipationParameters(
            baseline=from_fixed(baseline),
            baseline_floor=from_fixed(floor),
            baseline_update_factor=from_fixed(update_factor),
            baseline_quorum_factor=from_fixed(quorum_factor)
        )

    def get_constitution(self, destination: str, function_id: bytes) -> Decimal:
        raw = self._call(
            f"getConstitution({destination}, 0x{function_id.hex()})",
            lambda: self.governance.functions.getConstitution(
                Web3.to_checksum_address(destination), function_id
            ).call()
        )
        return from_fixed(raw)

    def get_queue(self) -> List[QueueEntry]:
        ids, upvotes = self._call(
            "getQueue()",
            lambda: self.governance.functions.getQueue().call()
        )
        return [QueueEntry(proposal_id=int(pid), upvotes=int(votes)) for pid, votes in zip(ids, upvotes)]

    def get_dequeue(self) -> List[int]:
        ids = self._call(
            "getDequeue()",
            lambda: self.governance.functions.getDequeue().call()
        )
        # Slots of resolved proposals are zeroed, not removed
        return [int(pid) for pid in ids if int(pid) != 0]

    def is_queued_proposal_expired(self, proposal_id: int) -> bool:
        return bool(self._call(
            f"isQueuedProposalExpired({proposal_id})",
            lambda: self.governance.functions.isQueuedProposalExpired(proposal_id).call()
        ))

    def is_dequeued_proposal_expired(self, proposal_id: int) -> bool:
        return bool(self._call(
            f"isDequeuedProposalExpired({proposal_id})",
            lambda: self.governance.functions.isDequeuedProposalExpired(proposal_id).call()
        ))

    def get_total_locked_gold(self) -> int:
        return int(self._call(
            "getTotalLockedGold()",
            lambda: self.locked_gold.functions.getTotalLockedGold().call()
        ))

    def is_account(self, address: str) -> bool:
        return bool(self._call(
            f"isAccount({address})",
            lambda: self.accounts.functions.isAccount(Web3.to_checksum_address(address)).call()
        ))

    def get_account_name(self, address: str) -> str:
        return self._call(
            f"getName({address})",
            lambda: self.accounts.functions.getName(Web3.to_checksum_address(address)).call()
        )

    def get_contract_details(self) -> List[ContractDetails]:
        details = [ContractDetails(name='Registry', address=Web3.to_checksum_address(REGISTRY_ADDRESS))]
        for name in REGISTERED_CONTRACTS:
            address = self._resolve(name)
            if not address or address.lower() == NULL_ADDRESS:
                logger.debug(f"{name} is not registered, skipping")
                continue
            details.append(ContractDetails(name=name, address=address))
        return details

    def get_past_events(self, event_name: str, from_block: int = 0) -> List[EventRecord]:
        if event_name not in GOVERNANCE_EVENT_SIGNATURES:
            raise ValueError(f"Unsupported governance event: {event_name}")

        governance = self.governance
        topic = Web3.to_hex(Web3.keccak(text=GOVERNANCE_EVENT_SIGNATURES[event_name]))
        logs = self._call(
            f"{event_name} log query from block {from_block}",
            lambda: self.w3.eth.get_logs({
                'fromBlock': from_block,
                'toBlock': 'latest',
                'address': governance.address,
                'topics': [topic],
            })
        )

        event = getattr(governance.events, event_name)()
        records = []
        for log in logs:
            decoded = event.process_log(log)
            args = dict(decoded['args'])
            records.append(EventRecord(
                event=event_name,
                proposal_id=int(args['proposalId']),
                block_number=int(decoded['blockNumber']),
                transaction_hash=Web3.to_hex(decoded['transactionHash']),
                args=args
            ))
        logger.debug(f"Found {len(records)} {event_name} events from block {from_block}")
        return records
