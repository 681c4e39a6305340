"""
Pytest configuration and shared fixtures for Celo Governance Tools tests.
"""
import pytest
from unittest.mock import MagicMock
from decimal import Decimal

from eth_abi import encode
from web3 import Web3

from celo_governance_client import (
    GovernanceClient, ContractDetails, ProposalMetadata, RawTransaction,
    StageDurations, VoteTotals, ParticipationParameters, EventRecord, Stage
)

# Digit-only addresses are their own checksum form
GOVERNANCE_ADDRESS = '0x1111111111111111111111111111111111111111'
REGISTRY_ADDRESS = '0x2222222222222222222222222222222222222222'
GOLD_TOKEN_ADDRESS = '0x3333333333333333333333333333333333333333'
VALIDATORS_ADDRESS = '0x4444444444444444444444444444444444444444'
COMMUNITY_FUND_ADDRESS = '0x5555555555555555555555555555555555555555'
UNKNOWN_ADDRESS = '0x6666666666666666666666666666666666666666'
PROPOSER_ADDRESS = '0x7777777777777777777777777777777777777777'

WEI = 10 ** 18
FIXED_ONE = 10 ** 24


def encode_call(signature: str, types, values) -> bytes:
    """ABI-encode a call the way it is stored in a proposal transaction"""
    return bytes(Web3.keccak(text=signature)[:4]) + encode(types, values)


@pytest.fixture
def contract_details():
    """Registry snapshot of the core contracts used in tests"""
    return [
        ContractDetails(name='Governance', address=GOVERNANCE_ADDRESS),
        ContractDetails(name='Registry', address=REGISTRY_ADDRESS),
        ContractDetails(name='GoldToken', address=GOLD_TOKEN_ADDRESS),
        ContractDetails(name='Validators', address=VALIDATORS_ADDRESS),
    ]


@pytest.fixture
def mock_client(contract_details):
    """GovernanceClient mock with a Referendum-stage proposal configured"""
    client = MagicMock(spec=GovernanceClient)
    client.get_contract_details.return_value = contract_details
    client.get_proposal_stage.return_value = Stage.REFERENDUM
    client.is_queued_proposal_expired.return_value = False
    client.is_dequeued_proposal_expired.return_value = False
    client.get_proposal.return_value = ProposalMetadata(
        proposer=PROPOSER_ADDRESS,
        deposit=100 * WEI,
        timestamp=1600000000,
        transaction_count=0,
        description_url='https://github.com/celo-org/celo-proposals/blob/master/CGPs/0001.md'
    )
    client.get_proposal_transactions.return_value = []
    client.get_stage_durations.return_value = StageDurations(
        approval=86400, referendum=432000, execution=259200
    )
    client.get_upvotes.return_value = 50 * WEI
    client.is_approved.return_value = True
    client.is_passing.return_value = True
    client.get_vote_totals.return_value = VoteTotals(yes=600 * WEI, no=300 * WEI, abstain=100 * WEI)
    client.get_total_locked_gold.return_value = 10000 * WEI
    client.get_participation_parameters.return_value = ParticipationParameters(
        baseline=Decimal('0.05'),
        baseline_floor=Decimal('0.05'),
        baseline_update_factor=Decimal('0.2'),
        baseline_quorum_factor=Decimal('1')
    )
    client.get_constitution.return_value = Decimal('0.6')
    client.is_account.return_value = False
    client.get_past_events.return_value = []
    return client


@pytest.fixture
def set_constitution_tx():
    """Governance.setConstitution(Registry, 0x12345678, 0.6) proposal transaction"""
    return RawTransaction(
        value=0,
        destination=GOVERNANCE_ADDRESS,
        data=encode_call(
            'setConstitution(address,bytes4,uint256)',
            ['address', 'bytes4', 'uint256'],
            [REGISTRY_ADDRESS, b'\x12\x34\x56\x78', 6 * FIXED_ONE // 10]
        )
    )


@pytest.fixture
def transfer_tx():
    """GoldToken.transfer(community fund, 1000 CELO) proposal transaction"""
    return RawTransaction(
        value=0,
        destination=GOLD_TOKEN_ADDRESS,
        data=encode_call(
            'transfer(address,uint256)',
            ['address', 'uint256'],
            [COMMUNITY_FUND_ADDRESS, 1000 * WEI]
        )
    )


@pytest.fixture
def queued_event():
    return EventRecord(
        event='ProposalQueued',
        proposal_id=7,
        block_number=1000,
        transaction_hash='0x' + 'aa' * 32,
        args={'proposalId': 7, 'proposer': PROPOSER_ADDRESS}
    )


@pytest.fixture
def executed_event():
    return EventRecord(
        event='ProposalExecuted',
        proposal_id=7,
        block_number=2000,
        transaction_hash='0x' + 'bb' * 32,
        args={'proposalId': 7}
    )
