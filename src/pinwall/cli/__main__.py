"""CLI entry point for pinwall.cli module.

Enables execution via: python -m pinwall.cli
"""

from pinwall.cli.reconcile import main

if __name__ == "__main__":
    main()
