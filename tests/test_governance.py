import pytest

from arkly.governance import (
    GOVERNANCE_ADDRESS,
    GovernanceError,
    GovernanceErrorCode,
    GovernanceProgram,
    ProposalDefeated,
    ProposalExecuted,
    ProposalQueued,
    ProposalStatus,
    ProposalType,
    Proposal,
)
from arkly.ledger import ProgramError

MINT = "ARKLY"
MIN_STAKE = 1_000
VOTING_PERIOD = 3_600
EXECUTION_DELAY = 600


@pytest.fixture
def env():
    program = GovernanceProgram()
    program.clock.unix_timestamp = 1_000_000
    program.initialize_governance("admin", MINT, MIN_STAKE, VOTING_PERIOD, EXECUTION_DELAY)
    ledger = program.ledger
    accounts = {
        "alice": ledger.create_account("alice", MINT, 5_000),
        "bob": ledger.create_account("bob", MINT, 2_000),
        "carol": ledger.create_account("carol", MINT, 10),
        "vault": ledger.create_account(GOVERNANCE_ADDRESS, MINT, 0),
    }
    return program, accounts


def _propose(program, accounts, proposer="alice", title="Raise fee"):
    return program.create_proposal(
        proposer,
        accounts[proposer],
        title,
        "Adjust the platform fee",
        ProposalType.PARAMETER_CHANGE,
        b"\x01\x02",
    )


def test_initialize_sets_fields(env):
    program, _ = env
    state = program.governance
    assert state.authority == "admin"
    assert state.arkly_mint == MINT
    assert state.min_proposal_stake == MIN_STAKE
    assert state.voting_period == VOTING_PERIOD
    assert state.execution_delay == EXECUTION_DELAY
    assert state.proposal_count == 0
    assert state.total_staked == 0


def test_initialize_twice_fails(env):
    program, _ = env
    with pytest.raises(ProgramError):
        program.initialize_governance("admin", MINT, 1, 1, 1)
    assert program.governance.min_proposal_stake == MIN_STAKE


def test_create_before_initialize_fails():
    program = GovernanceProgram()
    account = program.ledger.create_account("alice", MINT, 5_000)
    with pytest.raises(ProgramError):
        program.create_proposal(
            "alice", account, "t", "d", ProposalType.TREASURY_SPEND, b""
        )
    assert program.proposals == {}


def test_create_proposal_records_fields(env):
    program, accounts = env
    start = program.clock.unix_timestamp
    event = _propose(program, accounts)
    proposal = program.proposals[event.proposal_id]
    assert event.proposal_id == 0
    assert proposal.proposer == "alice"
    assert proposal.title == "Raise fee"
    assert proposal.execution_data == b"\x01\x02"
    assert proposal.status is ProposalStatus.ACTIVE
    assert proposal.created_at == start
    assert proposal.voting_ends_at == start + VOTING_PERIOD
    assert event.voting_ends_at == proposal.voting_ends_at
    assert program.governance.proposal_count == 1


def test_proposal_ids_increase(env):
    program, accounts = env
    first = _propose(program, accounts)
    second = _propose(program, accounts, proposer="bob")
    assert second.proposal_id == first.proposal_id + 1
    assert program.governance.proposal_count == 2


def test_create_proposal_insufficient_stake(env):
    program, accounts = env
    with pytest.raises(GovernanceError) as info:
        _propose(program, accounts, proposer="carol")
    assert info.value.code is GovernanceErrorCode.INSUFFICIENT_STAKE
    assert str(info.value) == "Insufficient stake to create proposal"
    assert program.governance.proposal_count == 0


def test_create_proposal_too_large(env):
    program, accounts = env
    with pytest.raises(ProgramError):
        program.create_proposal(
            "alice",
            accounts["alice"],
            "t",
            "x" * Proposal.LEN,
            ProposalType.PROTOCOL_UPGRADE,
            b"",
        )
    assert program.proposals == {}


def test_votes_accumulate_by_balance(env):
    program, accounts = env
    pid = _propose(program, accounts).proposal_id
    program.vote(pid, "alice", accounts["alice"], True)
    event = program.vote(pid, "bob", accounts["bob"], False)
    proposal = program.proposals[pid]
    assert proposal.votes_for == program.ledger.balance(accounts["alice"])
    assert proposal.votes_against == program.ledger.balance(accounts["bob"])
    assert event.voting_power == program.ledger.balance(accounts["bob"])
    record = program.voter_records[(pid, "bob")]
    assert record.has_voted and not record.support


def test_double_vote_rejected(env):
    program, accounts = env
    pid = _propose(program, accounts).proposal_id
    program.vote(pid, "alice", accounts["alice"], True)
    with pytest.raises(GovernanceError) as info:
        program.vote(pid, "alice", accounts["alice"], True)
    assert info.value.code is GovernanceErrorCode.ALREADY_VOTED
    assert program.proposals[pid].votes_for == program.ledger.balance(accounts["alice"])


def test_vote_at_end_allowed_after_end_rejected(env):
    program, accounts = env
    pid = _propose(program, accounts).proposal_id
    program.clock.advance(VOTING_PERIOD)
    program.vote(pid, "alice", accounts["alice"], True)
    program.clock.advance(1)
    with pytest.raises(GovernanceError) as info:
        program.vote(pid, "bob", accounts["bob"], True)
    assert info.value.code is GovernanceErrorCode.VOTING_PERIOD_ENDED


def test_vote_unknown_proposal(env):
    program, accounts = env
    with pytest.raises(ProgramError):
        program.vote(42, "alice", accounts["alice"], True)
    assert 42 not in program.proposals


def test_queue_before_end_rejected(env):
    program, accounts = env
    pid = _propose(program, accounts).proposal_id
    program.clock.advance(VOTING_PERIOD)
    with pytest.raises(GovernanceError) as info:
        program.queue_proposal(pid)
    assert info.value.code is GovernanceErrorCode.VOTING_PERIOD_NOT_ENDED


def test_passed_proposal_is_queued_and_executed(env):
    program, accounts = env
    pid = _propose(program, accounts).proposal_id
    program.vote(pid, "alice", accounts["alice"], True)
    program.vote(pid, "bob", accounts["bob"], False)
    now = program.clock.advance(VOTING_PERIOD + 1)
    queued = program.queue_proposal(pid)
    assert isinstance(queued, ProposalQueued)
    assert queued.execution_eta == now + EXECUTION_DELAY
    assert program.proposals[pid].status is ProposalStatus.QUEUED

    program.clock.advance(EXECUTION_DELAY - 1)
    with pytest.raises(GovernanceError) as info:
        program.execute_proposal(pid)
    assert info.value.code is GovernanceErrorCode.EXECUTION_DELAY_NOT_PASSED

    program.clock.advance(1)
    executed = program.execute_proposal(pid)
    assert executed == ProposalExecuted(pid, program.clock.unix_timestamp)
    assert program.proposals[pid].status is ProposalStatus.EXECUTED

    with pytest.raises(GovernanceError) as info:
        program.execute_proposal(pid)
    assert info.value.code is GovernanceErrorCode.PROPOSAL_NOT_QUEUED


def test_tie_is_defeated(env):
    program, accounts = env
    pid = _propose(program, accounts).proposal_id
    program.clock.advance(VOTING_PERIOD + 1)
    result = program.queue_proposal(pid)
    assert result == ProposalDefeated(pid)
    assert program.proposals[pid].status is ProposalStatus.DEFEATED
    with pytest.raises(GovernanceError) as info:
        program.queue_proposal(pid)
    assert info.value.code is GovernanceErrorCode.PROPOSAL_NOT_ACTIVE


def test_execute_active_proposal_rejected(env):
    program, accounts = env
    pid = _propose(program, accounts).proposal_id
    with pytest.raises(GovernanceError) as info:
        program.execute_proposal(pid)
    assert info.value.code is GovernanceErrorCode.PROPOSAL_NOT_QUEUED


def test_stake_and_unstake_round_trip(env):
    program, accounts = env
    before = program.ledger.balance(accounts["alice"])
    staked = program.stake_tokens("alice", accounts["alice"], accounts["vault"], 700)
    assert staked.total_staked == 700
    assert program.governance.total_staked == 700
    assert program.ledger.balance(accounts["vault"]) == 700
    assert program.ledger.balance(accounts["alice"]) == before - 700

    unstaked = program.unstake_tokens("alice", accounts["alice"], accounts["vault"], 700)
    assert unstaked.remaining_staked == 0
    assert program.governance.total_staked == 0
    assert program.ledger.balance(accounts["alice"]) == before
    assert program.ledger.balance(accounts["vault"]) == 0


def test_stake_accumulates(env):
    program, accounts = env
    program.stake_tokens("bob", accounts["bob"], accounts["vault"], 300)
    event = program.stake_tokens("bob", accounts["bob"], accounts["vault"], 200)
    assert event.total_staked == 500
    assert program.stake_accounts["bob"].staked_amount == 500
    assert program.governance.total_staked == 500


def test_unstake_more_than_staked_rejected(env):
    program, accounts = env
    program.stake_tokens("bob", accounts["bob"], accounts["vault"], 300)
    with pytest.raises(GovernanceError) as info:
        program.unstake_tokens("bob", accounts["bob"], accounts["vault"], 301)
    assert info.value.code is GovernanceErrorCode.INSUFFICIENT_STAKED_AMOUNT
    assert program.stake_accounts["bob"].staked_amount == 300
    assert program.ledger.balance(accounts["vault"]) == 300


def test_stake_more_than_balance_leaves_state(env):
    program, accounts = env
    balance = program.ledger.balance(accounts["carol"])
    with pytest.raises(ProgramError):
        program.stake_tokens("carol", accounts["carol"], accounts["vault"], balance + 1)
    assert program.governance.total_staked == 0
    assert "carol" not in program.stake_accounts
    assert program.ledger.balance(accounts["carol"]) == balance


def test_unstake_without_stake_account(env):
    program, accounts = env
    with pytest.raises(ProgramError):
        program.unstake_tokens("alice", accounts["alice"], accounts["vault"], 1)
    assert program.governance.total_staked == 0


def test_events_are_recorded_in_order(env):
    program, accounts = env
    created = _propose(program, accounts)
    cast = program.vote(created.proposal_id, "alice", accounts["alice"], True)
    assert program.events == [created, cast]