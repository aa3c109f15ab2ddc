"""Console script entrypoint for the piecework CLI."""

from .main import main

if __name__ == "__main__":
    raise SystemExit(main())
