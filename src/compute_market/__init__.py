"""Off-chain orchestration core of a decentralized compute marketplace."""

__version__ = "0.1.0"
