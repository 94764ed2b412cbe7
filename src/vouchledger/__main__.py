"""Entry point for 'python -m vouchledger' command.

This module allows the VouchLedger CLI to be invoked using
'python -m vouchledger'.
"""

from vouchledger.cli import main

if __name__ == "__main__":
    main()
