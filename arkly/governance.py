"""Governance program: staking, proposals, voting, queueing and execution."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from arkly.ledger import Clock, ProgramError, TokenLedger

logger = logging.getLogger(__name__)

GOVERNANCE_ADDRESS = "governance"
"""Signing identity of the governance account; it owns the staking vault."""

_U64_MAX = 2**64 - 1
_I64_MIN = -(2**63)
_I64_MAX = 2**63 - 1


def _u64(value: int) -> int:
    if not 0 <= value <= _U64_MAX:
        raise OverflowError("u64 arithmetic overflow")
    return value


def _i64(value: int) -> int:
    if not _I64_MIN <= value <= _I64_MAX:
        raise OverflowError("i64 arithmetic overflow")
    return value


class GovernanceErrorCode(Enum):
    INSUFFICIENT_STAKE = "Insufficient stake to create proposal"
    VOTING_PERIOD_ENDED = "Voting period has ended"
    PROPOSAL_NOT_ACTIVE = "Proposal is not active"
    ALREADY_VOTED = "User has already voted on this proposal"
    VOTING_PERIOD_NOT_ENDED = "Voting period has not ended"
    PROPOSAL_NOT_QUEUED = "Proposal is not queued for execution"
    EXECUTION_DELAY_NOT_PASSED = "Execution delay has not passed"
    INSUFFICIENT_STAKED_AMOUNT = "Insufficient staked amount"


class GovernanceError(ProgramError):
    """An error reported by the governance program."""

    def __init__(self, code: GovernanceErrorCode):
        super().__init__(code.value)
        self.code = code


class ProposalType(Enum):
    PARAMETER_CHANGE = 0
    TREASURY_SPEND = 1
    PROTOCOL_UPGRADE = 2
    PROPERTY_LISTING = 3


class ProposalStatus(Enum):
    ACTIVE = 0
    QUEUED = 1
    EXECUTED = 2
    DEFEATED = 3
    EXPIRED = 4


_EXECUTION_MESSAGES = {
    ProposalType.PARAMETER_CHANGE: "Executing parameter change proposal",
    ProposalType.TREASURY_SPEND: "Executing treasury spending proposal",
    ProposalType.PROTOCOL_UPGRADE: "Executing protocol upgrade proposal",
    ProposalType.PROPERTY_LISTING: "Executing property listing proposal",
}


@dataclass
class Governance:
    authority: str
    arkly_mint: str
    min_proposal_stake: int
    voting_period: int
    execution_delay: int
    proposal_count: int = 0
    total_staked: int = 0

    LEN = 32 + 32 + 8 + 8 + 8 + 8 + 8


@dataclass
class Proposal:
    id: int
    proposer: str
    title: str
    description: str
    proposal_type: ProposalType
    execution_data: bytes
    votes_for: int
    votes_against: int
    status: ProposalStatus
    created_at: int
    voting_ends_at: int
    execution_eta: int

    LEN = 8 + 32 + 4 + 100 + 4 + 500 + 1 + 4 + 256 + 8 + 8 + 1 + 8 + 8 + 8
    # Bytes taken by everything except the contents of title, description
    # and execution data.
    _FIXED = 8 + 32 + 4 + 4 + 1 + 4 + 8 + 8 + 1 + 8 + 8 + 8

    def serialized_size(self) -> int:
        return (
            self._FIXED
            + len(self.title.encode("utf-8"))
            + len(self.description.encode("utf-8"))
            + len(self.execution_data)
        )


@dataclass
class VoterRecord:
    proposal: int
    voter: str
    has_voted: bool = False
    support: bool = False
    voting_power: int = 0
    voted_at: int = 0

    LEN = 32 + 32 + 1 + 1 + 8 + 8


@dataclass
class StakeAccount:
    user: str
    staked_amount: int = 0
    last_stake_time: int = 0

    LEN = 32 + 8 + 8


@dataclass(frozen=True)
class ProposalCreated:
    proposal_id: int
    proposer: str
    title: str
    proposal_type: ProposalType
    voting_ends_at: int


@dataclass(frozen=True)
class VoteCast:
    proposal_id: int
    voter: str
    support: bool
    voting_power: int
    timestamp: int


@dataclass(frozen=True)
class ProposalQueued:
    proposal_id: int
    execution_eta: int


@dataclass(frozen=True)
class ProposalExecuted:
    proposal_id: int
    timestamp: int


@dataclass(frozen=True)
class ProposalDefeated:
    proposal_id: int


@dataclass(frozen=True)
class TokensStaked:
    user: str
    amount: int
    total_staked: int
    timestamp: int


@dataclass(frozen=True)
class TokensUnstaked:
    user: str
    amount: int
    remaining_staked: int
    timestamp: int


@dataclass
class GovernanceProgram:
    """The governance program's state and instructions."""

    ledger: TokenLedger = field(default_factory=TokenLedger)
    clock: Clock = field(default_factory=Clock)
    governance: Governance | None = None
    proposals: dict[int, Proposal] = field(default_factory=dict)
    voter_records: dict[tuple[int, str], VoterRecord] = field(default_factory=dict)
    stake_accounts: dict[str, StakeAccount] = field(default_factory=dict)
    events: list = field(default_factory=list)

    def _state(self) -> Governance:
        if self.governance is None:
            raise ProgramError("governance account is not initialized")
        return self.governance

    def _proposal(self, proposal_id: int) -> Proposal:
        try:
            return self.proposals[proposal_id]
        except KeyError:
            raise ProgramError(f"unknown proposal {proposal_id!r}") from None

    def _emit(self, event):
        self.events.append(event)
        return event

    def initialize_governance(
        self,
        authority: str,
        arkly_mint: str,
        min_proposal_stake: int,
        voting_period: int,
        execution_delay: int,
    ) -> Governance:
        if self.governance is not None:
            raise ProgramError("governance account already initialized")
        _u64(min_proposal_stake)
        _i64(voting_period)
        _i64(execution_delay)
        self.governance = Governance(
            authority=authority,
            arkly_mint=arkly_mint,
            min_proposal_stake=min_proposal_stake,
            voting_period=voting_period,
            execution_delay=execution_delay,
        )
        return self.governance

    def create_proposal(
        self,
        proposer: str,
        proposer_stake: str,
        title: str,
        description: str,
        proposal_type: ProposalType,
        execution_data: bytes,
    ) -> ProposalCreated:
        state = self._state()
        proposal_type = ProposalType(proposal_type)
        if self.ledger.balance(proposer_stake) < state.min_proposal_stake:
            raise GovernanceError(GovernanceErrorCode.INSUFFICIENT_STAKE)

        now = self.clock.unix_timestamp
        proposal = Proposal(
            id=state.proposal_count,
            proposer=proposer,
            title=title,
            description=description,
            proposal_type=proposal_type,
            execution_data=bytes(execution_data),
            votes_for=0,
            votes_against=0,
            status=ProposalStatus.ACTIVE,
            created_at=now,
            voting_ends_at=_i64(now + state.voting_period),
            execution_eta=0,
        )
        if proposal.serialized_size() > Proposal.LEN:
            raise ProgramError("proposal does not fit in its account")
        new_count = _u64(state.proposal_count + 1)

        self.proposals[proposal.id] = proposal
        state.proposal_count = new_count
        return self._emit(
            ProposalCreated(
                proposal_id=proposal.id,
                proposer=proposer,
                title=title,
                proposal_type=proposal_type,
                voting_ends_at=proposal.voting_ends_at,
            )
        )

    def vote(
        self, proposal_id: int, voter: str, voter_token_account: str, support: bool
    ) -> VoteCast:
        proposal = self._proposal(proposal_id)
        now = self.clock.unix_timestamp
        if now > proposal.voting_ends_at:
            raise GovernanceError(GovernanceErrorCode.VOTING_PERIOD_ENDED)
        if proposal.status is not ProposalStatus.ACTIVE:
            raise GovernanceError(GovernanceErrorCode.PROPOSAL_NOT_ACTIVE)
        record = self.voter_records.get(
            (proposal_id, voter), VoterRecord(proposal=proposal_id, voter=voter)
        )
        if record.has_voted:
            raise GovernanceError(GovernanceErrorCode.ALREADY_VOTED)

        voting_power = self.ledger.balance(voter_token_account)
        if support:
            proposal.votes_for = _u64(proposal.votes_for + voting_power)
        else:
            proposal.votes_against = _u64(proposal.votes_against + voting_power)

        record.has_voted = True
        record.support = bool(support)
        record.voting_power = voting_power
        record.voted_at = now
        self.voter_records[(proposal_id, voter)] = record
        return self._emit(
            VoteCast(
                proposal_id=proposal.id,
                voter=voter,
                support=bool(support),
                voting_power=voting_power,
                timestamp=now,
            )
        )

    def queue_proposal(self, proposal_id: int) -> ProposalQueued | ProposalDefeated:
        state = self._state()
        proposal = self._proposal(proposal_id)
        now = self.clock.unix_timestamp
        if now <= proposal.voting_ends_at:
            raise GovernanceError(GovernanceErrorCode.VOTING_PERIOD_NOT_ENDED)
        if proposal.status is not ProposalStatus.ACTIVE:
            raise GovernanceError(GovernanceErrorCode.PROPOSAL_NOT_ACTIVE)

        if proposal.votes_for > proposal.votes_against:
            eta = _i64(now + state.execution_delay)
            proposal.status = ProposalStatus.QUEUED
            proposal.execution_eta = eta
            return self._emit(ProposalQueued(proposal_id=proposal.id, execution_eta=eta))
        proposal.status = ProposalStatus.DEFEATED
        return self._emit(ProposalDefeated(proposal_id=proposal.id))

    def execute_proposal(self, proposal_id: int) -> ProposalExecuted:
        proposal = self._proposal(proposal_id)
        if proposal.status is not ProposalStatus.QUEUED:
            raise GovernanceError(GovernanceErrorCode.PROPOSAL_NOT_QUEUED)
        now = self.clock.unix_timestamp
        if now < proposal.execution_eta:
            raise GovernanceError(GovernanceErrorCode.EXECUTION_DELAY_NOT_PASSED)

        logger.info(_EXECUTION_MESSAGES[proposal.proposal_type])
        proposal.status = ProposalStatus.EXECUTED
        return self._emit(ProposalExecuted(proposal_id=proposal.id, timestamp=now))

    def stake_tokens(
        self, user: str, user_token_account: str, governance_vault: str, amount: int
    ) -> TokensStaked:
        state = self._state()
        stake = self.stake_accounts.get(user, StakeAccount(user=user))
        new_staked = _u64(stake.staked_amount + amount)
        new_total = _u64(state.total_staked + amount)

        self.ledger.transfer(user_token_account, governance_vault, user, amount)

        now = self.clock.unix_timestamp
        stake.staked_amount = new_staked
        stake.last_stake_time = now
        self.stake_accounts[user] = stake
        state.total_staked = new_total
        return self._emit(
            TokensStaked(user=user, amount=amount, total_staked=new_staked, timestamp=now)
        )

    def unstake_tokens(
        self, user: str, user_token_account: str, governance_vault: str, amount: int
    ) -> TokensUnstaked:
        state = self._state()
        stake = self.stake_accounts.get(user)
        if stake is None:
            raise ProgramError("stake account is not initialized")
        if stake.staked_amount < amount:
            raise GovernanceError(GovernanceErrorCode.INSUFFICIENT_STAKED_AMOUNT)
        new_total = _u64(state.total_staked - amount)

        self.ledger.transfer(
            governance_vault, user_token_account, GOVERNANCE_ADDRESS, amount
        )

        stake.staked_amount -= amount
        state.total_staked = new_total
        return self._emit(
            TokensUnstaked(
                user=user,
                amount=amount,
                remaining_staked=stake.staked_amount,
                timestamp=self.clock.unix_timestamp,
            )
        )