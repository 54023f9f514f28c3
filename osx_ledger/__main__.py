"""Allow ``python -m osx_ledger``."""
from .cli import main

if __name__ == "__main__":
    main()
