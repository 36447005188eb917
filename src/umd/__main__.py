"""Allow ``python -m umd`` to run the CLI."""

from umd.cli import main

if __name__ == "__main__":
    main()
