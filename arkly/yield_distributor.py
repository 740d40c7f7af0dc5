"""Yield distributor program: rental-revenue pools, snapshots and claims."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum

from arkly.ledger import Clock, ProgramError, TokenLedger

POOL_SIGNER_PREFIX = "yield_pool:"
"""A pool signs for its vault as this prefix followed by its pool id."""

DISTRIBUTION_LIFETIME = 30 * 24 * 60 * 60
_MAX_SEED_LEN = 32
_PROOF_NODE_LEN = 32
_U32_MAX = 2**32 - 1
_U64_MAX = 2**64 - 1
_I64_MIN = -(2**63)
_I64_MAX = 2**63 - 1


def _u64(value: int) -> int:
    if not 0 <= value <= _U64_MAX:
        raise OverflowError("u64 arithmetic overflow")
    return value


def _u32(value: int) -> int:
    if not 0 <= value <= _U32_MAX:
        raise OverflowError("u32 arithmetic overflow")
    return value


def _i64(value: int) -> int:
    if not _I64_MIN <= value <= _I64_MAX:
        raise OverflowError("i64 arithmetic overflow")
    return value


def _check_seed(value: str) -> str:
    if len(value.encode("utf-8")) > _MAX_SEED_LEN:
        raise ProgramError("max seed length exceeded")
    return value


class YieldErrorCode(Enum):
    POOL_NOT_ACTIVE = "Pool is not active"
    UNAUTHORIZED = "Unauthorized access"
    INSUFFICIENT_FUNDS = "Insufficient funds in the pool"
    DISTRIBUTION_NOT_ACTIVE = "Distribution is not active"
    DISTRIBUTION_EXPIRED = "Distribution has expired"
    ALREADY_CLAIMED = "User has already claimed for this distribution"
    INVALID_PROOF = "Invalid merkle proof"
    NO_YIELD_TO_CLAIM = "No yield to claim"
    CANNOT_FINALIZE = "Cannot finalize distribution yet"


class YieldError(ProgramError):
    """An error reported by the yield distributor."""

    def __init__(self, code: YieldErrorCode):
        super().__init__(code.value)
        self.code = code


class DistributionFrequency(Enum):
    MONTHLY = 0
    QUARTERLY = 1
    SEMI_ANNUALLY = 2
    ANNUALLY = 3


class PoolStatus(Enum):
    ACTIVE = 0
    PAUSED = 1
    CLOSED = 2


class DistributionStatus(Enum):
    ACTIVE = 0
    FINALIZED = 1
    EXPIRED = 2


@dataclass
class YieldPool:
    pool_id: str
    authority: str
    property_mint: str
    usdc_vault: str
    distribution_frequency: DistributionFrequency
    created_at: int
    total_deposited: int = 0
    total_distributed: int = 0
    last_distribution: int = 0
    distributions_count: int = 0
    status: PoolStatus = PoolStatus.ACTIVE

    LEN = 4 + 50 + 32 + 32 + 32 + 8 + 8 + 1 + 8 + 4 + 1 + 8


@dataclass
class Distribution:
    snapshot_id: str
    yield_pool: str
    total_tokens_eligible: int
    yield_amount: int
    created_at: int
    expires_at: int
    distributed_amount: int = 0
    claims_count: int = 0
    status: DistributionStatus = DistributionStatus.ACTIVE

    LEN = 4 + 50 + 32 + 8 + 8 + 8 + 4 + 1 + 8 + 8


@dataclass
class ClaimRecord:
    claimer: str
    distribution: str
    has_claimed: bool = False
    claimed_amount: int = 0
    claimed_at: int = 0

    LEN = 32 + 32 + 1 + 8 + 8


@dataclass(frozen=True)
class ClaimData:
    claimer: str
    token_balance: int
    yield_amount: int


@dataclass(frozen=True)
class YieldPoolCreated:
    pool_id: str
    property_mint: str
    usdc_vault: str
    distribution_frequency: DistributionFrequency
    timestamp: int


@dataclass(frozen=True)
class YieldDeposited:
    pool_id: str
    depositor: str
    amount: int
    yield_period: str
    total_deposited: int
    timestamp: int


@dataclass(frozen=True)
class DistributionCreated:
    snapshot_id: str
    pool_id: str
    yield_amount: int
    total_tokens_eligible: int
    expires_at: int
    timestamp: int


@dataclass(frozen=True)
class YieldClaimed:
    claimer: str
    distribution_id: str
    token_balance: int
    yield_amount: int
    timestamp: int


@dataclass(frozen=True)
class BatchClaimsProcessed:
    distribution_id: str
    claims_processed: int
    total_amount: int
    timestamp: int


@dataclass(frozen=True)
class DistributionFinalized:
    distribution_id: str
    total_distributed: int
    unclaimed_amount: int
    timestamp: int


@dataclass(frozen=True)
class PoolPaused:
    pool_id: str
    timestamp: int


@dataclass(frozen=True)
class PoolResumed:
    pool_id: str
    timestamp: int


def verify_merkle_proof(proof: Sequence[bytes], claimer: str, token_balance: int) -> bool:
    """Accept any non-empty proof for a positive balance."""
    return len(proof) > 0 and token_balance > 0


@dataclass
class YieldDistributor:
    """The yield distributor's state and instructions."""

    ledger: TokenLedger = field(default_factory=TokenLedger)
    clock: Clock = field(default_factory=Clock)
    pools: dict[str, YieldPool] = field(default_factory=dict)
    distributions: dict[str, Distribution] = field(default_factory=dict)
    claim_records: dict[tuple[str, str], ClaimRecord] = field(default_factory=dict)
    events: list = field(default_factory=list)

    def _pool(self, pool_id: str) -> YieldPool:
        try:
            return self.pools[pool_id]
        except KeyError:
            raise ProgramError(f"unknown yield pool {pool_id!r}") from None

    def _distribution(self, snapshot_id: str) -> Distribution:
        try:
            return self.distributions[snapshot_id]
        except KeyError:
            raise ProgramError(f"unknown distribution {snapshot_id!r}") from None

    @staticmethod
    def _require_authority(pool: YieldPool, authority: str) -> None:
        if authority != pool.authority:
            raise YieldError(YieldErrorCode.UNAUTHORIZED)

    def _emit(self, event):
        self.events.append(event)
        return event

    def initialize_yield_pool(
        self,
        authority: str,
        pool_id: str,
        property_mint: str,
        usdc_vault: str,
        distribution_frequency: DistributionFrequency,
    ) -> YieldPoolCreated:
        _check_seed(pool_id)
        if pool_id in self.pools:
            raise ProgramError("yield pool account already initialized")
        frequency = DistributionFrequency(distribution_frequency)
        self.ledger.account(usdc_vault)
        now = self.clock.unix_timestamp
        self.pools[pool_id] = YieldPool(
            pool_id=pool_id,
            authority=authority,
            property_mint=property_mint,
            usdc_vault=usdc_vault,
            distribution_frequency=frequency,
            created_at=now,
        )
        return self._emit(
            YieldPoolCreated(
                pool_id=pool_id,
                property_mint=property_mint,
                usdc_vault=usdc_vault,
                distribution_frequency=frequency,
                timestamp=now,
            )
        )

    def deposit_yield(
        self,
        pool_id: str,
        depositor: str,
        depositor_usdc: str,
        amount: int,
        yield_period: str,
    ) -> YieldDeposited:
        pool = self._pool(pool_id)
        if pool.status is not PoolStatus.ACTIVE:
            raise YieldError(YieldErrorCode.POOL_NOT_ACTIVE)
        new_total = _u64(pool.total_deposited + amount)

        self.ledger.transfer(depositor_usdc, pool.usdc_vault, depositor, amount)

        pool.total_deposited = new_total
        return self._emit(
            YieldDeposited(
                pool_id=pool.pool_id,
                depositor=depositor,
                amount=amount,
                yield_period=yield_period,
                total_deposited=new_total,
                timestamp=self.clock.unix_timestamp,
            )
        )

    def create_distribution_snapshot(
        self,
        pool_id: str,
        authority: str,
        snapshot_id: str,
        total_tokens_eligible: int,
        yield_amount: int,
    ) -> DistributionCreated:
        pool = self._pool(pool_id)
        _check_seed(snapshot_id)
        if snapshot_id in self.distributions:
            raise ProgramError("distribution account already initialized")
        self._require_authority(pool, authority)
        _u64(total_tokens_eligible)
        _u64(yield_amount)
        available = _u64(pool.total_deposited - pool.total_distributed)
        if yield_amount > available:
            raise YieldError(YieldErrorCode.INSUFFICIENT_FUNDS)

        now = self.clock.unix_timestamp
        distribution = Distribution(
            snapshot_id=snapshot_id,
            yield_pool=pool.pool_id,
            total_tokens_eligible=total_tokens_eligible,
            yield_amount=yield_amount,
            created_at=now,
            expires_at=_i64(now + DISTRIBUTION_LIFETIME),
        )
        self.distributions[snapshot_id] = distribution
        return self._emit(
            DistributionCreated(
                snapshot_id=snapshot_id,
                pool_id=pool.pool_id,
                yield_amount=yield_amount,
                total_tokens_eligible=total_tokens_eligible,
                expires_at=distribution.expires_at,
                timestamp=now,
            )
        )

    def claim_yield(
        self,
        pool_id: str,
        snapshot_id: str,
        claimer: str,
        claimer_usdc: str,
        token_balance: int,
        merkle_proof: Iterable[bytes],
    ) -> YieldClaimed:
        pool = self._pool(pool_id)
        distribution = self._distribution(snapshot_id)
        proof = [bytes(node) for node in merkle_proof]
        if any(len(node) != _PROOF_NODE_LEN for node in proof):
            raise ValueError("each merkle proof node must be 32 bytes")
        _u64(token_balance)

        if distribution.status is not DistributionStatus.ACTIVE:
            raise YieldError(YieldErrorCode.DISTRIBUTION_NOT_ACTIVE)
        now = self.clock.unix_timestamp
        if now > distribution.expires_at:
            raise YieldError(YieldErrorCode.DISTRIBUTION_EXPIRED)
        key = (snapshot_id, claimer)
        record = self.claim_records.get(
            key, ClaimRecord(claimer=claimer, distribution=snapshot_id)
        )
        if record.has_claimed:
            raise YieldError(YieldErrorCode.ALREADY_CLAIMED)
        if not verify_merkle_proof(proof, claimer, token_balance):
            raise YieldError(YieldErrorCode.INVALID_PROOF)
        if distribution.total_tokens_eligible == 0:
            raise ZeroDivisionError("distribution has no eligible tokens")

        yield_amount = (
            _u64(distribution.yield_amount * token_balance)
            // distribution.total_tokens_eligible
        )
        if yield_amount <= 0:
            raise YieldError(YieldErrorCode.NO_YIELD_TO_CLAIM)
        new_distributed = _u64(distribution.distributed_amount + yield_amount)
        new_claims = _u32(distribution.claims_count + 1)
        new_pool_total = _u64(pool.total_distributed + yield_amount)

        self.ledger.transfer(
            pool.usdc_vault, claimer_usdc, POOL_SIGNER_PREFIX + pool.pool_id, yield_amount
        )

        record.has_claimed = True
        record.claimed_amount = yield_amount
        record.claimed_at = now
        self.claim_records[key] = record
        distribution.distributed_amount = new_distributed
        distribution.claims_count = new_claims
        pool.total_distributed = new_pool_total
        return self._emit(
            YieldClaimed(
                claimer=claimer,
                distribution_id=distribution.snapshot_id,
                token_balance=token_balance,
                yield_amount=yield_amount,
                timestamp=now,
            )
        )

    def batch_process_claims(
        self,
        pool_id: str,
        snapshot_id: str,
        authority: str,
        claim_data: Iterable[ClaimData],
    ) -> BatchClaimsProcessed:
        pool = self._pool(pool_id)
        distribution = self._distribution(snapshot_id)
        self._require_authority(pool, authority)
        if distribution.status is not DistributionStatus.ACTIVE:
            raise YieldError(YieldErrorCode.DISTRIBUTION_NOT_ACTIVE)

        total_processed = 0
        claims_processed = 0
        for claim in claim_data:
            total_processed = _u64(total_processed + claim.yield_amount)
            claims_processed = _u32(claims_processed + 1)

        new_distributed = _u64(distribution.distributed_amount + total_processed)
        new_claims = _u32(distribution.claims_count + claims_processed)
        new_pool_total = _u64(pool.total_distributed + total_processed)
        distribution.distributed_amount = new_distributed
        distribution.claims_count = new_claims
        pool.total_distributed = new_pool_total
        return self._emit(
            BatchClaimsProcessed(
                distribution_id=distribution.snapshot_id,
                claims_processed=claims_processed,
                total_amount=total_processed,
                timestamp=self.clock.unix_timestamp,
            )
        )

    def finalize_distribution(
        self, pool_id: str, snapshot_id: str, authority: str
    ) -> DistributionFinalized:
        pool = self._pool(pool_id)
        distribution = self._distribution(snapshot_id)
        self._require_authority(pool, authority)
        now = self.clock.unix_timestamp
        if not (
            now > distribution.expires_at
            or distribution.distributed_amount == distribution.yield_amount
        ):
            raise YieldError(YieldErrorCode.CANNOT_FINALIZE)
        unclaimed = _u64(distribution.yield_amount - distribution.distributed_amount)

        distribution.status = DistributionStatus.FINALIZED
        return self._emit(
            DistributionFinalized(
                distribution_id=distribution.snapshot_id,
                total_distributed=distribution.distributed_amount,
                unclaimed_amount=unclaimed,
                timestamp=now,
            )
        )

    def pause_pool(self, pool_id: str, authority: str) -> PoolPaused:
        pool = self._pool(pool_id)
        self._require_authority(pool, authority)
        pool.status = PoolStatus.PAUSED
        return self._emit(PoolPaused(pool_id=pool.pool_id, timestamp=self.clock.unix_timestamp))

    def resume_pool(self, pool_id: str, authority: str) -> PoolResumed:
        pool = self._pool(pool_id)
        self._require_authority(pool, authority)
        pool.status = PoolStatus.ACTIVE
        return self._emit(PoolResumed(pool_id=pool.pool_id, timestamp=self.clock.unix_timestamp))