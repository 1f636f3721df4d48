"""Package entry point for ``python -m clip_refiner``."""

from clip_refiner.cli import main

if __name__ == "__main__":
    main()
