# arkly

An in-memory model of a tokenised real-estate platform. It keeps the
state and rules of three programs in plain Python objects:

- **Token** (`arkly.token`): the ARKLY token's supply split across eight
  allocations, presale purchases paid in USDC, and claims of vested
  tokens after a cliff and a linear vesting period.
- **Governance** (`arkly.governance`): staking ARKLY, creating proposals,
  voting with token balance, queueing passed proposals behind an
  execution delay and executing them.
- **Yield distribution** (`arkly.yield_distributor`): per-property USDC
  yield pools, distribution snapshots that expire after 30 days,
  individual and batch claims, finalisation, and pausing.

Token balances live in a shared `TokenLedger` (`arkly.ledger`), and
time comes from a `Clock` that you advance by hand with
`Clock.advance(seconds)`, so every rule that depends on time can be
exercised deterministically. Amounts are checked against the unsigned
64-bit range; arithmetic that would leave it raises `OverflowError`.

## Installation

```
pip install .
```

Python 3.10 or later. No third-party dependencies.

## Example

```python
from arkly.ledger import Clock, TokenLedger
from arkly.token import AllocationType, TokenProgram

clock = Clock()
ledger = TokenLedger()

usdc = "usdc-mint"
arkly_mint = "arkly-mint"

buyer_usdc = ledger.create_account("alice", usdc, 1_000_000_000)
treasury_usdc = ledger.create_account("treasury", usdc, 0)
buyer_arkly = ledger.create_account("alice", arkly_mint, 0)

tokens = TokenProgram(ledger, clock)
tokens.initialize_token("admin", arkly_mint, 1_000_000_000, 9)
tokens.purchase_presale("alice", buyer_usdc, treasury_usdc,
                        1_000, AllocationType.PUBLIC_PRESALE)

tokens.claim_vested_tokens("alice", buyer_arkly)
print(ledger.balance(buyer_arkly))  # 1000
```

## Modules

### `arkly.ledger`

- `TokenLedger.create_account(owner, mint, amount=0)` opens an account
  and returns its address.
- `TokenLedger.transfer(source, destination, authority, amount)` moves a
  balance; the authority must own the source account and both accounts
  must hold the same mint.
- `TokenLedger.mint_to(mint, destination, amount)` creates new tokens.
- `TokenLedger.account(address)` and `TokenLedger.balance(address)`
  look accounts up.

Failures raise `ProgramError`.

### `arkly.token`

`TokenProgram` offers `initialize_token`, `purchase_presale` and
`claim_vested_tokens`. Presale purchases are only accepted for
`AllocationType.SEED_ROUND` and `AllocationType.PUBLIC_PRESALE`.
`calculate_vested_amount(user_purchase, token_info, current_timestamp)`
counts months of 30 days from the purchase record's
`purchase_timestamp`, which purchases leave at its default of 0.
`TokenomicsAllocations.for_supply(total_supply)` builds the eight
allocations.

### `arkly.governance`

`GovernanceProgram` offers `initialize_governance`, `create_proposal`,
`vote`, `queue_proposal`, `execute_proposal`, `stake_tokens` and
`unstake_tokens`. Unstaking transfers out of the vault signed by
`GOVERNANCE_ADDRESS`, so the vault account must be owned by that name.
Executing a proposal logs a message for its `ProposalType` and marks it
`ProposalStatus.EXECUTED`.

### `arkly.yield_distributor`

`YieldDistributor` offers `initialize_yield_pool`, `deposit_yield`,
`create_distribution_snapshot`, `claim_yield`, `batch_process_claims`,
`finalize_distribution`, `pause_pool` and `resume_pool`. A pool pays
claims out of its vault signed by `POOL_SIGNER_PREFIX` followed by its
pool id, so the vault must be owned by that name.

## Errors and events

Each program method raises its program's error (`TokenError`,
`GovernanceError`, `YieldError`, all subclasses of `ProgramError`) when
a rule is broken; the error carries a `code` from an error-code enum and
that code's message. Methods return the event they emit, and every
event is also appended to the program object's `events` list in the
order it happened.

## What this package does not do

- `verify_merkle_proof` does not check a Merkle tree: it accepts any
  non-empty proof for a positive token balance.
- `batch_process_claims` only adds the listed amounts to the
  distribution and pool counters; it moves no tokens.
- Executing a proposal does not act on its `execution_data`.
- All state lives in memory; nothing is stored, and there is no command
  line or network interface.

## Tests

```
pip install .[test]
pytest
```