"""Allow `python -m rowbisect`."""

from .cli import main

main()
