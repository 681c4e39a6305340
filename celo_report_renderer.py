#!/usr/bin/env python3
"""
Celo Governance Report Renderer

Turns aggregated proposal data into the plain-text reports printed by the CLI.
Pure formatting: nothing here talks to the node.
"""

from typing import Any, List, Optional, Union

from celo_utils import format_amount, format_percent, format_timestamp
from celo_base import CeloTool
from celo_governance_client import Stage
from celo_transaction_decoder import DecodedTransaction
from celo_proposal_aggregator import (
    ProposalReport, ProposalOutcome, ActiveListing, ExecutedProposal, VoteSummary
)


def format_value(value: Any) -> str:
    """Render a decoded parameter value"""
    if isinstance(value, (bytes, bytearray)):
        return '0x' + bytes(value).hex()
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (list, tuple)):
        return '[' + ', '.join(format_value(v) for v in value) + ']'
    return str(value)


def format_call(tx: DecodedTransaction) -> str:
    """`Contract.function(a=1)`, wrapping onto indented lines for several parameters"""
    params = [f"{p.name}={format_value(p.value)}" for p in tx.params]
    if len(params) == 0:
        args = ""
    elif len(params) == 1:
        args = params[0]
    else:
        args = "\n    " + ",\n    ".join(params) + ",\n"
    return f"{tx.contract}.{tx.function}({args})"


class ReportRenderer(CeloTool):
    """Fixed-layout text rendering of proposal reports and listings"""

    def __init__(self, explorer_base: Optional[str] = None) -> None:
        super().__init__(explorer_base=explorer_base)

    @staticmethod
    def _date(timestamp: int) -> str:
        return format_timestamp(timestamp)

    @staticmethod
    def _celo(amount: int) -> str:
        return format_amount(amount)

    def render(self, report: Union[ProposalReport, ProposalOutcome]) -> str:
        if isinstance(report, ProposalOutcome):
            return self.render_outcome(report)
        return self.render_report(report)

    def render_outcome(self, outcome: ProposalOutcome) -> str:
        lines = [
            f"ProposalID: {outcome.proposal_id}",
            f"Proposer: {self.address_url(outcome.proposer)}",
            f"Stage:      {outcome.stage}",
        ]
        if outcome.executed:
            lines.append("EXECUTED")
            if outcome.execution_tx:
                lines.append(f"Transaction: {self.tx_url(outcome.execution_tx)}")
        else:
            lines.append("EXPIRED")
        return "\n".join(lines)

    def render_votes(self, votes: VoteSummary) -> List[str]:
        return [
            f"  TOTAL:   {votes.pct_total}% (Needs {votes.baseline_pct}%) - "
            f"{self._celo(votes.total)} out of {self._celo(votes.total_locked)}",
            f"  YES:     {votes.pct_yes}% (Needs {format_percent(votes.threshold)}%) - {self._celo(votes.yes)}",
            f"  NO:      {votes.pct_no}% - {self._celo(votes.no)}",
            f"  ABSTAIN: {votes.pct_abstain}% - {self._celo(votes.abstain)}",
            f"  NEEDED:  {self._celo(votes.yes_needed)} more YES votes",
        ]

    def render_report(self, report: ProposalReport) -> str:
        schedule = report.schedule
        stage = report.stage
        lines = [
            f"ProposalID: {report.proposal_id}",
            f"Proposer: {self.address_url(report.proposer)}",
            f"Description: {report.description_url}",
            f"Stage:      {stage}",
        ]

        if stage == Stage.QUEUED:
            lines.append(f"Proposed:   {self._date(schedule.proposed)}")
            lines.append(f"Expires:    {self._date(schedule.expiration)}")
            lines.append(f"UpVotes:    {self._celo(report.upvotes or 0)}")
        else:
            lines.append(f"Dequeued:   {self._date(schedule.proposed)}")
            if stage == Stage.APPROVAL:
                lines.append(f"Referendum: {self._date(schedule.referendum)}")
            if stage in (Stage.APPROVAL, Stage.REFERENDUM):
                lines.append(f"Execution:  {self._date(schedule.execution)}")
            lines.append(f"Approved:   {str(bool(report.approved)).upper()}")
            if stage == Stage.APPROVAL:
                lines.append("Passing:    FALSE (voting hasn't started yet!)")
            elif report.approved:
                lines.append(f"Passing:    {str(bool(report.passing)).upper()}")
                if report.votes is not None:
                    lines.extend(self.render_votes(report.votes))

        lines.append("")
        for tx in report.transactions:
            lines.append(format_call(tx))
            if tx.value:
                lines.append(f"    value: {self._celo(tx.value)} CELO")
        return "\n".join(lines)

    def render_active(self, listing: ActiveListing) -> str:
        lines = []
        if listing.dequeued:
            lines.append(f"Proposals ({len(listing.dequeued)}):")
            for proposal in listing.dequeued:
                msg = f"ID: {proposal.proposal_id} - {proposal.stage}"
                if proposal.expired:
                    msg += " (EXPIRED)"
                lines.append(msg)

        if listing.queued:
            if lines:
                lines.append("")
            lines.append(f"Queued ({len(listing.queued)}):")
            for proposal in listing.queued:
                msg = f"ID: {proposal.proposal_id}, UpVotes: {self._celo(proposal.upvotes)}"
                if proposal.expired:
                    msg += " (EXPIRED)"
                lines.append(msg)

        if not lines:
            return "No active proposals."
        return "\n".join(lines)

    def render_executed(self, executed: List[ExecutedProposal]) -> str:
        lines = ["Executed proposals:"]
        for proposal in executed:
            lines.append(
                f"ID: {proposal.proposal_id}, Block: @{proposal.block_number}, "
                f"{self.tx_url(proposal.transaction_hash)}"
            )
        return "\n".join(lines)
