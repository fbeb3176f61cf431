"""Entry point for running ssrbridge as a module: python -m ssrbridge"""

from ssrbridge.cli.commands import app

if __name__ == "__main__":
    app()
