"""Allow ``python -m vesu_lever``."""
from .cli import main

if __name__ == "__main__":
    main()
