"""Allow ``python -m apiconsole``."""

from apiconsole.cli.main import app

if __name__ == "__main__":
    app()
