"""
Allow running the package with: python -m twinfinder

By default, launches the CLI. Use the 'gui' subcommand for the API server.

Examples:
    python -m twinfinder /path/to/photos         # Analyse from the CLI
    python -m twinfinder cli /path/to/photos     # CLI (explicit)
    python -m twinfinder gui                     # Start the API server
    python -m twinfinder config --init           # Create example config file
"""

import sys


def main():
    if len(sys.argv) > 1 and sys.argv[1] == 'gui':
        # Remove 'gui' from argv so argparse in app.py doesn't see it
        sys.argv.pop(1)
        from .app import main as gui_main
        gui_main()
    elif len(sys.argv) > 1 and sys.argv[1] == 'config':
        sys.argv.pop(1)
        from .user_config import get_user_config

        config = get_user_config()

        if '--init' in sys.argv or '-i' in sys.argv:
            if config.create_example_config():
                print("Created example configuration file at:")
                print(f"  {config.config_file_path}")
            else:
                print("Failed to create configuration file.")
                sys.exit(1)
        else:
            print(f"Configuration file: {config.config_file_path}")
            if config.config_file_path.exists():
                print("Status: found")
            else:
                print("Status: not found (using defaults)")
                print("\nRun 'python -m twinfinder config --init' to create one.")

            print("\nCurrent settings:")
            for key, value in config.to_dict().items():
                print(f"  {key}: {value}")
    else:
        if len(sys.argv) > 1 and sys.argv[1] == 'cli':
            sys.argv.pop(1)
        from .cli import main as cli_main
        sys.exit(cli_main())


if __name__ == '__main__':
    main()
