"""ARKLY token program: tokenomics, presale purchases and vesting claims."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum

from arkly.ledger import Clock, ProgramError, TokenLedger

SECONDS_PER_MONTH = 30 * 24 * 60 * 60
_PRICE_SCALE = 1_000_000_000
_U64_MAX = 2**64 - 1


def _u64(value: int) -> int:
    if not 0 <= value <= _U64_MAX:
        raise OverflowError("u64 arithmetic overflow")
    return value


def _trunc_div(numerator: int, denominator: int) -> int:
    quotient = abs(numerator) // abs(denominator)
    return quotient if (numerator >= 0) == (denominator > 0) else -quotient


class TokenErrorCode(Enum):
    INVALID_ALLOCATION_TYPE = "Invalid allocation type"
    INSUFFICIENT_ALLOCATION = "Insufficient allocation remaining"
    NO_TOKENS_TO_CLAIM = "No tokens available to claim"
    CLIFF_NOT_REACHED = "Cliff period not reached"
    UNAUTHORIZED = "Unauthorized"


class TokenError(ProgramError):
    """An error reported by the token program."""

    def __init__(self, code: TokenErrorCode):
        super().__init__(code.value)
        self.code = code


class AllocationType(IntEnum):
    SEED_ROUND = 0
    PUBLIC_PRESALE = 1
    LIQUIDITY_POOL = 2
    TEAM_ADVISORS = 3
    ECOSYSTEM_REWARDS = 4
    TREASURY_DEV = 5
    STRATEGIC_PARTNERS = 6
    COMMUNITY_AIRDROPS = 7


def _allocation_type(value: int) -> AllocationType:
    try:
        return AllocationType(value)
    except ValueError:
        raise TokenError(TokenErrorCode.INVALID_ALLOCATION_TYPE) from None


@dataclass
class AllocationInfo:
    amount: int
    price: int  # micro-dollars
    cliff_months: int
    vesting_months: int
    released: int = 0


@dataclass
class TokenomicsAllocations:
    seed_round: AllocationInfo
    public_presale: AllocationInfo
    liquidity_pool: AllocationInfo
    team_advisors: AllocationInfo
    ecosystem_rewards: AllocationInfo
    treasury_dev: AllocationInfo
    strategic_partners: AllocationInfo
    community_airdrops: AllocationInfo

    @classmethod
    def for_supply(cls, total_supply: int) -> TokenomicsAllocations:
        """Split ``total_supply`` into the fixed tokenomics buckets."""

        def share(numerator: int, denominator: int) -> int:
            return _u64(total_supply * numerator) // denominator

        return cls(
            seed_round=AllocationInfo(share(12, 100), 83_000_000, 6, 12),
            public_presale=AllocationInfo(share(75, 1000), 100_000_000, 0, 0),
            liquidity_pool=AllocationInfo(share(10, 100), 150_000_000, 0, 1),
            team_advisors=AllocationInfo(share(15, 100), 0, 12, 24),
            ecosystem_rewards=AllocationInfo(share(25, 100), 0, 0, 36),
            treasury_dev=AllocationInfo(share(20, 100), 0, 0, 0),
            strategic_partners=AllocationInfo(share(5, 100), 0, 6, 12),
            community_airdrops=AllocationInfo(share(8, 100), 0, 0, 0),
        )

    def by_type(self, allocation_type: int) -> AllocationInfo:
        """Return the bucket for an allocation type number."""
        kind = _allocation_type(allocation_type)
        return getattr(self, kind.name.lower())


@dataclass
class TokenInfo:
    total_supply: int
    circulating_supply: int
    decimals: int
    authority: str
    mint: str
    allocations: TokenomicsAllocations


@dataclass
class UserPurchase:
    user: str
    allocation_type: int = 0
    amount_purchased: int = 0
    amount_claimed: int = 0
    total_paid: int = 0
    purchase_timestamp: int = 0
    last_purchase: int = 0
    last_claim: int = 0


@dataclass(frozen=True)
class TokenPurchaseEvent:
    user: str
    amount: int
    price: int
    allocation_type: int
    timestamp: int


@dataclass(frozen=True)
class TokenClaimEvent:
    user: str
    amount: int
    timestamp: int


def calculate_vested_amount(
    user_purchase: UserPurchase, token_info: TokenInfo, current_timestamp: int
) -> int:
    """Return the tokens vested for a purchase and not yet claimed."""
    allocation = token_info.allocations.by_type(user_purchase.allocation_type)
    months = _trunc_div(
        current_timestamp - user_purchase.purchase_timestamp, SECONDS_PER_MONTH
    )
    if months < allocation.cliff_months:
        return 0
    if allocation.vesting_months == 0:
        vested = user_purchase.amount_purchased
    else:
        passed = min(months - allocation.cliff_months, allocation.vesting_months)
        vested = (
            _u64(user_purchase.amount_purchased * passed) // allocation.vesting_months
        )
    return max(0, vested - user_purchase.amount_claimed)


@dataclass
class TokenProgram:
    """The token program's state and instructions."""

    ledger: TokenLedger = field(default_factory=TokenLedger)
    clock: Clock = field(default_factory=Clock)
    token_info: TokenInfo | None = None
    purchases: dict[str, UserPurchase] = field(default_factory=dict)
    events: list = field(default_factory=list)

    def _info(self) -> TokenInfo:
        if self.token_info is None:
            raise ProgramError("token info account is not initialized")
        return self.token_info

    def initialize_token(
        self, authority: str, mint: str, total_supply: int, decimals: int
    ) -> TokenInfo:
        if self.token_info is not None:
            raise ProgramError("token info account already initialized")
        _u64(total_supply)
        if not 0 <= decimals <= 255:
            raise ValueError("decimals must fit in a u8")
        self.token_info = TokenInfo(
            total_supply=total_supply,
            circulating_supply=0,
            decimals=decimals,
            authority=authority,
            mint=mint,
            allocations=TokenomicsAllocations.for_supply(total_supply),
        )
        return self.token_info

    def purchase_presale(
        self,
        user: str,
        user_usdc: str,
        treasury_usdc: str,
        amount: int,
        allocation_type: int,
    ) -> TokenPurchaseEvent:
        info = self._info()
        kind = _allocation_type(allocation_type)
        if kind not in (AllocationType.SEED_ROUND, AllocationType.PUBLIC_PRESALE):
            raise TokenError(TokenErrorCode.INVALID_ALLOCATION_TYPE)
        allocation = info.allocations.by_type(kind)
        if _u64(allocation.released + amount) > allocation.amount:
            raise TokenError(TokenErrorCode.INSUFFICIENT_ALLOCATION)

        payment = _u64(amount * allocation.price) // _PRICE_SCALE
        previous = self.purchases.get(user, UserPurchase(user=user))
        new_purchased = _u64(previous.amount_purchased + amount)
        new_paid = _u64(previous.total_paid + payment)
        new_circulating = _u64(info.circulating_supply + amount)

        self.ledger.transfer(user_usdc, treasury_usdc, user, payment)

        now = self.clock.unix_timestamp
        purchase = self.purchases.setdefault(user, previous)
        purchase.user = user
        purchase.allocation_type = int(kind)
        purchase.amount_purchased = new_purchased
        purchase.total_paid = new_paid
        purchase.last_purchase = now
        allocation.released += amount
        info.circulating_supply = new_circulating

        event = TokenPurchaseEvent(user, amount, allocation.price, int(kind), now)
        self.events.append(event)
        return event

    def claim_vested_tokens(self, user: str, user_token_account: str) -> TokenClaimEvent:
        info = self._info()
        purchase = self.purchases.get(user)
        if purchase is None:
            raise ProgramError("user purchase account is not initialized")
        now = self.clock.unix_timestamp
        claimable = calculate_vested_amount(purchase, info, now)
        if claimable <= 0:
            raise TokenError(TokenErrorCode.NO_TOKENS_TO_CLAIM)
        new_claimed = _u64(purchase.amount_claimed + claimable)

        self.ledger.mint_to(info.mint, user_token_account, claimable)

        purchase.amount_claimed = new_claimed
        purchase.last_claim = now
        event = TokenClaimEvent(user, claimable, now)
        self.events.append(event)
        return event