"""In-memory SPL-style token ledger and clock used by the programs."""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field

_U64_MAX = 2**64 - 1


class ProgramError(Exception):
    """Raised when an instruction fails; the instruction has no effect."""


def _require_amount(amount: int) -> int:
    if not isinstance(amount, int) or isinstance(amount, bool):
        raise TypeError("amount must be an integer")
    if not 0 <= amount <= _U64_MAX:
        raise ValueError(f"amount {amount} is outside the u64 range")
    return amount


@dataclass
class Clock:
    """A settable source of the current unix timestamp."""

    unix_timestamp: int = 0

    def advance(self, seconds: int) -> int:
        """Move the clock forward and return the new timestamp."""
        self.unix_timestamp += seconds
        return self.unix_timestamp


@dataclass
class TokenAccount:
    """A balance of one mint held by one owner."""

    address: str
    owner: str
    mint: str
    amount: int = 0


@dataclass
class TokenLedger:
    """Holds token accounts and moves balances between them."""

    accounts: dict[str, TokenAccount] = field(default_factory=dict)
    _ids: itertools.count = field(
        default_factory=lambda: itertools.count(1), repr=False, compare=False
    )

    def create_account(self, owner: str, mint: str, amount: int = 0) -> str:
        """Open a new account and return its address."""
        _require_amount(amount)
        address = f"account-{next(self._ids)}"
        self.accounts[address] = TokenAccount(address, owner, mint, amount)
        return address

    def account(self, address: str) -> TokenAccount:
        """Return the account at ``address``."""
        try:
            return self.accounts[address]
        except KeyError:
            raise ProgramError(f"unknown token account {address!r}") from None

    def balance(self, address: str) -> int:
        return self.account(address).amount

    def transfer(
        self, source: str, destination: str, authority: str, amount: int
    ) -> None:
        """Move ``amount`` from ``source`` to ``destination``, signed by ``authority``."""
        _require_amount(amount)
        src = self.account(source)
        dst = self.account(destination)
        if src.owner != authority:
            raise ProgramError("owner does not match the signing authority")
        if src.mint != dst.mint:
            raise ProgramError("account mints do not match")
        if src.amount < amount:
            raise ProgramError("insufficient funds")
        if source != destination:
            if dst.amount + amount > _U64_MAX:
                raise ProgramError("balance overflow")
            src.amount -= amount
            dst.amount += amount

    def mint_to(self, mint: str, destination: str, amount: int) -> None:
        """Create ``amount`` new tokens of ``mint`` in ``destination``."""
        _require_amount(amount)
        dst = self.account(destination)
        if dst.mint != mint:
            raise ProgramError("account mint does not match")
        if dst.amount + amount > _U64_MAX:
            raise ProgramError("balance overflow")
        dst.amount += amount