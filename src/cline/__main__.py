"""Allow ``python -m cline``."""

from cline.cli import main

if __name__ == "__main__":
    main()
