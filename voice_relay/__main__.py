"""Package entry point for ``python -m voice_relay``."""

from voice_relay.cli import main

if __name__ == "__main__":
    main()
