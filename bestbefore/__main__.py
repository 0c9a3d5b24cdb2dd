"""``python -m bestbefore`` support."""

from .cli import main

if __name__ == "__main__":
    main()
