"""Allow ``python -m rice``."""

from rice.main import main

if __name__ == "__main__":
    main()
