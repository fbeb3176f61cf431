"""Entry point: ``python -m ssrbridge.worker <bundle-path>``."""

from ssrbridge.worker.server import main

if __name__ == "__main__":
    main()
