"""Time-locked position ledger for registered singularity pools."""

__version__ = "0.1.0"
