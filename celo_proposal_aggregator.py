#!/usr/bin/env python3
"""
Celo Proposal Aggregator

Assembles everything needed to report on governance proposals: proposal
records, decoded transactions, stage timing, vote tallies and thresholds, and
the active/executed proposal listings.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_CEILING
from typing import List, Optional, Union

from celo_utils import (
    ValidationError, ProposalNotFoundError, MAX_CONCURRENT_LOOKUPS, ABI_DIR,
    round_half_up, logger
)
from celo_contracts import load_abis
from celo_governance_client import (
    GovernanceClient, Stage, StageDurations, VoteTotals, ContractDetails, RawTransaction
)
from celo_address_annotator import AddressAnnotator
from celo_transaction_decoder import TransactionDecoder, DecodedTransaction, function_selector


@dataclass
class StageSchedule:
    """Stage boundary timestamps (epoch seconds)"""
    proposed: int
    referendum: int
    execution: int
    expiration: int


@dataclass
class VoteSummary:
    yes: int
    no: int
    abstain: int
    total: int
    total_locked: int
    pct_yes: int
    pct_no: int
    pct_abstain: int
    pct_total: int
    baseline: Decimal
    baseline_pct: int
    threshold: Decimal
    yes_needed: int


@dataclass
class ProposalReport:
    """Full report for a proposal that is still queued or in a voting stage"""
    proposal_id: int
    proposer: str
    description_url: str
    stage: Stage
    schedule: StageSchedule
    transactions: List[DecodedTransaction]
    upvotes: Optional[int] = None
    approved: Optional[bool] = None
    passing: Optional[bool] = None
    votes: Optional[VoteSummary] = None


@dataclass
class ProposalOutcome:
    """Reduced report for a proposal that has left the voting pipeline"""
    proposal_id: int
    proposer: str
    executed: bool
    execution_tx: Optional[str] = None
    stage: Stage = Stage.EXPIRATION


@dataclass
class ActiveProposal:
    proposal_id: int
    stage: Stage
    expired: bool


@dataclass
class QueuedProposal:
    proposal_id: int
    upvotes: int
    expired: bool


@dataclass
class ActiveListing:
    dequeued: List[ActiveProposal]
    queued: List[QueuedProposal]


@dataclass
class ExecutedProposal:
    proposal_id: int
    block_number: int
    transaction_hash: str


def derive_schedule(timestamp: int, durations: StageDurations) -> StageSchedule:
    """Stage boundaries by cumulative addition of the fixed stage durations"""
    referendum = timestamp + durations.approval
    execution = referendum + durations.referendum
    expiration = execution + durations.execution
    return StageSchedule(proposed=timestamp, referendum=referendum,
                         execution=execution, expiration=expiration)


def summarize_votes(votes: VoteTotals, total_locked: int,
                    baseline: Decimal, threshold: Decimal) -> VoteSummary:
    """
    Percentages and thresholds for a proposal's vote tallies.

    Percentages are whole numbers (integer division). The additional yes
    votes needed clear the larger of the votes cast and the quorum
    (total locked x baseline), scaled by the approval threshold.
    """
    total = votes.total

    def pct(part: int, whole: int) -> int:
        return part * 100 // whole if whole else 0

    quorum = Decimal(total_locked) * baseline
    required = threshold * max(Decimal(total), quorum)
    shortfall = required - Decimal(votes.yes)
    yes_needed = int(shortfall.to_integral_value(rounding=ROUND_CEILING)) if shortfall > 0 else 0

    return VoteSummary(
        yes=votes.yes,
        no=votes.no,
        abstain=votes.abstain,
        total=total,
        total_locked=total_locked,
        pct_yes=pct(votes.yes, total),
        pct_no=pct(votes.no, total),
        pct_abstain=pct(votes.abstain, total),
        pct_total=pct(total, total_locked),
        baseline=baseline,
        baseline_pct=round_half_up(baseline * 100),
        threshold=threshold,
        yes_needed=yes_needed
    )


class ProposalAggregator:
    """
    Builds proposal reports and listings from a GovernanceClient.

    When the on-chain stage and the contract's own expiry check disagree,
    the expiry check wins and the proposal is reported as expired.
    """

    def __init__(self, client: GovernanceClient,
                 max_workers: int = MAX_CONCURRENT_LOOKUPS,
                 abi_dir: Optional[str] = ABI_DIR) -> None:
        self.client = client
        self.max_workers = max_workers
        self.abis = load_abis(abi_dir)
        self._contract_details: Optional[List[ContractDetails]] = None

    @property
    def contract_details(self) -> List[ContractDetails]:
        if self._contract_details is None:
            self._contract_details = self.client.get_contract_details()
            logger.debug(f"Resolved {len(self._contract_details)} core contract addresses")
        return self._contract_details

    def build_decoder(self) -> TransactionDecoder:
        details = self.contract_details
        annotator = AddressAnnotator(self.client, details)
        return TransactionDecoder(details, annotator, self.abis, self.max_workers)

    def is_expired(self, proposal_id: int, stage: Stage) -> bool:
        """Expiry as computed by the contract, independent of the reported stage"""
        if stage == Stage.EXPIRATION:
            return True
        if stage == Stage.QUEUED:
            expired = self.client.is_queued_proposal_expired(proposal_id)
        else:
            expired = self.client.is_dequeued_proposal_expired(proposal_id)
        if expired:
            logger.info(f"Proposal {proposal_id} reports stage {stage} but has expired")
        return expired

    def get_report(self, proposal_id: int) -> Union[ProposalReport, ProposalOutcome]:
        """
        Report on a single proposal.

        Raises:
            ProposalNotFoundError: If an expired proposal has no queue event
            DecodeError / ValidationError: If any transaction cannot be decoded
        """
        stage = self.client.get_proposal_stage(proposal_id)
        if self.is_expired(proposal_id, stage):
            return self.get_outcome(proposal_id)

        metadata = self.client.get_proposal(proposal_id)
        raw_transactions = self.client.get_proposal_transactions(proposal_id, metadata.transaction_count)
        if len(raw_transactions) != metadata.transaction_count:
            raise ValidationError(
                f"Proposal {proposal_id} has {metadata.transaction_count} transactions "
                f"but {len(raw_transactions)} were returned"
            )
        transactions = self.build_decoder().decode_all(raw_transactions)

        durations = self.client.get_stage_durations()
        report = ProposalReport(
            proposal_id=proposal_id,
            proposer=metadata.proposer,
            description_url=metadata.description_url,
            stage=stage,
            schedule=derive_schedule(metadata.timestamp, durations),
            transactions=transactions
        )

        if stage == Stage.QUEUED:
            report.upvotes = self.client.get_upvotes(proposal_id)
            return report

        report.approved = self.client.is_approved(proposal_id)
        if stage == Stage.APPROVAL:
            # Voting has not started yet
            report.passing = False
            return report
        if not report.approved:
            # Tallies are only reported for approved proposals
            return report

        report.passing = self.client.is_passing(proposal_id)
        params = self.client.get_participation_parameters()
        report.votes = summarize_votes(
            self.client.get_vote_totals(proposal_id),
            self.client.get_total_locked_gold(),
            params.baseline,
            self.get_threshold(raw_transactions)
        )
        return report

    def get_threshold(self, transactions: List[RawTransaction]) -> Decimal:
        """Approval threshold of a proposal: the strictest of its transactions' constitutions"""
        threshold = Decimal(0)
        for tx in transactions:
            threshold = max(threshold, self.client.get_constitution(tx.destination, function_selector(tx.data)))
        return threshold

    def get_outcome(self, proposal_id: int) -> ProposalOutcome:
        """Whether a proposal that left the pipeline was executed or expired"""
        queued = next(
            (e for e in self.client.get_past_events('ProposalQueued', 0) if e.proposal_id == proposal_id),
            None
        )
        if queued is None:
            raise ProposalNotFoundError(proposal_id)

        executed = next(
            (e for e in self.client.get_past_events('ProposalExecuted', queued.block_number)
             if e.proposal_id == proposal_id),
            None
        )
        return ProposalOutcome(
            proposal_id=proposal_id,
            proposer=queued.args.get('proposer', ''),
            executed=executed is not None,
            execution_tx=executed.transaction_hash if executed else None
        )

    def list_active(self) -> ActiveListing:
        """Dequeued proposals still being voted on, and proposals waiting in the queue"""
        dequeued = []
        for proposal_id in self.client.get_dequeue():
            expired = self.client.is_dequeued_proposal_expired(proposal_id)
            stage = self.client.get_proposal_stage(proposal_id)
            if expired and stage != Stage.EXPIRATION:
                logger.debug(f"Proposal {proposal_id} reports stage {stage} but has expired")
                stage = Stage.EXPIRATION
            dequeued.append(ActiveProposal(proposal_id=proposal_id, stage=stage, expired=expired))

        queued = []
        for entry in self.client.get_queue():
            queued.append(QueuedProposal(
                proposal_id=entry.proposal_id,
                upvotes=entry.upvotes,
                expired=self.client.is_queued_proposal_expired(entry.proposal_id)
            ))

        return ActiveListing(dequeued=dequeued, queued=queued)

    def list_executed(self) -> List[ExecutedProposal]:
        """Every executed proposal, in the order the events were emitted"""
        return [
            ExecutedProposal(
                proposal_id=event.proposal_id,
                block_number=event.block_number,
                transaction_hash=event.transaction_hash
            )
            for event in self.client.get_past_events('ProposalExecuted', 0)
        ]
