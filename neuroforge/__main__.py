"""Entry point for python -m neuroforge."""

from .cli import main

if __name__ == "__main__":
    main()
