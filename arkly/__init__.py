"""In-memory model of token vesting, staking governance and rental yield distribution."""

__version__ = "0.1.0"
__all__ = ["ledger", "token", "governance", "yield_distributor"]