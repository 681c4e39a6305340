"""
Tests for celo_report_renderer module.
"""
import pytest
from decimal import Decimal

from celo_governance_client import Stage, VoteTotals
from celo_proposal_aggregator import (
    ProposalReport, ProposalOutcome, ActiveListing, ActiveProposal, QueuedProposal,
    ExecutedProposal, StageSchedule, summarize_votes
)
from celo_report_renderer import ReportRenderer, format_call, format_value
from celo_transaction_decoder import DecodedTransaction, Param

from conftest import REGISTRY_ADDRESS, PROPOSER_ADDRESS, WEI

EXPLORER = 'https://explorer.celo.org'
SCHEDULE = StageSchedule(
    proposed=1600000000,
    referendum=1600086400,
    execution=1600518400,
    expiration=1600777600,
)
UPGRADE = DecodedTransaction(
    contract='Validators',
    function='_setImplementation',
    params=[Param('implementation', '0x6666666666666666666666666666666666666666', 'address')],
    value=0
)
SET_CONSTITUTION = DecodedTransaction(
    contract='Governance',
    function='setConstitution',
    params=[
        Param('destination', f'contract:Registry:{REGISTRY_ADDRESS}', 'address'),
        Param('functionId', b'\x12\x34\x56\x78', 'bytes4'),
        Param('threshold', 600000000000000000000000, 'uint256'),
    ],
    value=0
)


@pytest.fixture
def renderer():
    return ReportRenderer(explorer_base=EXPLORER)


def make_report(stage, **kwargs):
    return ProposalReport(
        proposal_id=3,
        proposer=PROPOSER_ADDRESS,
        description_url='https://example.com/cgp-0003.md',
        stage=stage,
        schedule=SCHEDULE,
        transactions=kwargs.pop('transactions', [UPGRADE]),
        **kwargs
    )


class TestFormatting:
    """Tests for parameter and call formatting"""

    def test_format_value(self):
        assert format_value(b'\x12\x34') == '0x1234'
        assert format_value(True) == 'true'
        assert format_value(42) == '42'
        assert format_value(['a', 1, False]) == '[a, 1, false]'

    def test_call_without_params(self):
        tx = DecodedTransaction('Freezer', 'pause', [], 0)
        assert format_call(tx) == 'Freezer.pause()'

    def test_call_single_param_inline(self):
        assert format_call(UPGRADE) == \
            'Validators._setImplementation(implementation=0x6666666666666666666666666666666666666666)'

    def test_call_several_params_wrapped(self):
        assert format_call(SET_CONSTITUTION) == (
            "Governance.setConstitution(\n"
            f"    destination=contract:Registry:{REGISTRY_ADDRESS},\n"
            "    functionId=0x12345678,\n"
            "    threshold=600000000000000000000000,\n"
            ")"
        )


class TestRenderReport:
    """Tests for the single proposal report layout"""

    def test_queued(self, renderer):
        output = renderer.render(make_report(Stage.QUEUED, upvotes=50 * WEI))

        assert output.split('\n')[:7] == [
            'ProposalID: 3',
            f'Proposer: {EXPLORER}/address/{PROPOSER_ADDRESS}',
            'Description: https://example.com/cgp-0003.md',
            'Stage:      Queued',
            'Proposed:   Sun, 13 Sep 2020 12:26:40 GMT',
            'Expires:    Tue, 22 Sep 2020 12:26:40 GMT',
            'UpVotes:    50.000000000000000000',
        ]
        assert 'Approved' not in output

    def test_approval(self, renderer):
        output = renderer.render(make_report(Stage.APPROVAL, approved=False, passing=False))
        lines = output.split('\n')

        assert 'Dequeued:   Sun, 13 Sep 2020 12:26:40 GMT' in lines
        assert 'Referendum: Mon, 14 Sep 2020 12:26:40 GMT' in lines
        assert 'Execution:  Sat, 19 Sep 2020 12:26:40 GMT' in lines
        assert 'Approved:   FALSE' in lines
        assert "Passing:    FALSE (voting hasn't started yet!)" in lines
        assert not any(line.startswith('  YES:') for line in lines)

    def test_referendum_with_votes(self, renderer):
        votes = summarize_votes(VoteTotals(600 * WEI, 300 * WEI, 100 * WEI), 10000 * WEI,
                                Decimal('0.05'), Decimal('0.6'))
        output = renderer.render(make_report(Stage.REFERENDUM, approved=True, passing=True, votes=votes))
        lines = output.split('\n')

        assert 'Referendum:' not in output
        assert 'Execution:  Sat, 19 Sep 2020 12:26:40 GMT' in lines
        assert 'Passing:    TRUE' in lines
        assert '  TOTAL:   10% (Needs 5%) - 1000.000000000000000000 out of 10000.000000000000000000' in lines
        assert '  YES:     60% (Needs 60%) - 600.000000000000000000' in lines
        assert '  NO:      30% - 300.000000000000000000' in lines
        assert '  ABSTAIN: 10% - 100.000000000000000000' in lines
        assert '  NEEDED:  0.000000000000000000 more YES votes' in lines

    def test_unapproved_referendum_omits_tallies(self, renderer):
        output = renderer.render(make_report(Stage.REFERENDUM, approved=False))
        header = output.split('\n\n', 1)[0]

        assert header.endswith('Approved:   FALSE')
        assert 'Passing:' not in output
        assert 'YES:' not in output

    def test_execution_stage_omits_execution_date(self, renderer):
        output = renderer.render(make_report(Stage.EXECUTION, approved=True, passing=True))

        assert 'Stage:      Execution' in output
        assert 'Execution:  ' not in output
        assert 'Referendum: ' not in output

    def test_single_blank_line_before_transactions(self, renderer):
        output = renderer.render(make_report(Stage.REFERENDUM, approved=True, passing=False,
                                             transactions=[UPGRADE, SET_CONSTITUTION]))
        header, body = output.split('\n\n', 1)

        assert header.endswith('Passing:    FALSE')
        assert body.startswith('Validators._setImplementation(')
        assert '\n\n' not in body

    def test_attached_value_line(self, renderer):
        paying = DecodedTransaction('GoldToken', 'transfer', [], 2 * WEI)
        output = renderer.render(make_report(Stage.QUEUED, upvotes=0, transactions=[paying]))

        assert output.endswith('GoldToken.transfer()\n    value: 2.000000000000000000 CELO')


class TestRenderOutcome:
    """Tests for executed/expired proposal output"""

    def test_expired(self, renderer):
        output = renderer.render(ProposalOutcome(proposal_id=7, proposer=PROPOSER_ADDRESS, executed=False))

        assert output.split('\n') == [
            'ProposalID: 7',
            f'Proposer: {EXPLORER}/address/{PROPOSER_ADDRESS}',
            'Stage:      Expiration',
            'EXPIRED',
        ]

    def test_executed(self, renderer):
        tx_hash = '0x' + 'bb' * 32
        output = renderer.render(ProposalOutcome(
            proposal_id=7, proposer=PROPOSER_ADDRESS, executed=True, execution_tx=tx_hash
        ))
        lines = output.split('\n')

        assert lines[2] == 'Stage:      Expiration'
        assert lines[3] == 'EXECUTED'
        assert lines[4] == f'Transaction: {EXPLORER}/tx/{tx_hash}'


class TestRenderListings:
    """Tests for active and executed listings"""

    def test_active(self, renderer):
        listing = ActiveListing(
            dequeued=[
                ActiveProposal(5, Stage.REFERENDUM, False),
                ActiveProposal(6, Stage.EXPIRATION, True),
            ],
            queued=[QueuedProposal(8, 10 * WEI, False), QueuedProposal(9, 0, True)],
        )

        assert renderer.render_active(listing).split('\n') == [
            'Proposals (2):',
            'ID: 5 - Referendum',
            'ID: 6 - Expiration (EXPIRED)',
            '',
            'Queued (2):',
            'ID: 8, UpVotes: 10.000000000000000000',
            'ID: 9, UpVotes: 0.000000000000000000 (EXPIRED)',
        ]

    def test_only_queued(self, renderer):
        listing = ActiveListing(dequeued=[], queued=[QueuedProposal(8, WEI, False)])
        assert renderer.render_active(listing) == 'Queued (1):\nID: 8, UpVotes: 1.000000000000000000'

    def test_no_active(self, renderer):
        assert renderer.render_active(ActiveListing([], [])) == 'No active proposals.'

    def test_executed(self, renderer):
        executed = [
            ExecutedProposal(4, 300, '0x' + '01' * 32),
            ExecutedProposal(2, 500, '0x' + '02' * 32),
        ]

        assert renderer.render_executed(executed).split('\n') == [
            'Executed proposals:',
            f'ID: 4, Block: @300, {EXPLORER}/tx/0x' + '01' * 32,
            f'ID: 2, Block: @500, {EXPLORER}/tx/0x' + '02' * 32,
        ]

    def test_no_executed(self, renderer):
        assert renderer.render_executed([]) == 'Executed proposals:'
