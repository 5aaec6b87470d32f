"""Allow ``python -m lendingops``."""
from .cli import main

main()
