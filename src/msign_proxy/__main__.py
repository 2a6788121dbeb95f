"""
Entry point for `python -m msign_proxy`.

Usage:
    python -m msign_proxy serve
    python -m msign_proxy initiate contract.pdf --return-url https://app.example/done
    python -m msign_proxy status <request-id>
"""

from .ui.cli import main

main()
