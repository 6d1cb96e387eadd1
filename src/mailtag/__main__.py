"""Entry point for running mailtag as a module.

Usage:
    python -m mailtag validate-config
    python -m mailtag --help
"""

from dotenv import load_dotenv

load_dotenv()  # Load .env (e.g. MAILTAG_CONFIG_PATH) before reading config

from mailtag.cli import main  # noqa: E402

if __name__ == "__main__":
    main()
