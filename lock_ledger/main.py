#!/usr/bin/env python3
"""
Lock ledger
Entry point for ``python -m lock_ledger.main``
"""
from .cli import main

if __name__ == "__main__":
    main()
