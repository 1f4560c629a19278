"""
eco-rating CLI Entry Point

Allows running the package as a module: python -m ecorating
"""

import sys


def main():
    """Main entry point for the CLI."""
    try:
        from ecorating.cli import app

        app()
    except ImportError as e:
        print(f"Error: Missing dependencies for CLI. {e}")
        print("Install with: pip install typer rich")
        sys.exit(1)


if __name__ == "__main__":
    main()
