#!/usr/bin/env python3
"""
TwinFinder - API Server
=======================
Local JSON API over the analysis engine, for use by a front end.

Run with: python -m twinfinder gui
Or: twinfinder-gui

Options:
    -q, --quiet     Quiet mode - suppress all output except errors
    -v, --verbose   Verbose mode - show all Flask request logs
    --host          Interface to bind (default: 127.0.0.1)
    -p, --port      Port to run on (default: 5000)
"""

import argparse
import atexit
import logging

from flask import Flask, jsonify

from .api import api
from .state import analysis_session


# Logging levels
LOG_QUIET = 0    # No output except errors
LOG_MINIMAL = 1  # Startup info only (default)
LOG_VERBOSE = 2  # All Flask request logs


def create_app(log_level: int = LOG_MINIMAL) -> Flask:
    """
    Create and configure the Flask application.

    Args:
        log_level: Logging verbosity level

    Returns:
        Configured Flask app instance
    """
    app = Flask(__name__)

    if log_level < LOG_VERBOSE:
        log = logging.getLogger('werkzeug')
        log.setLevel(logging.ERROR if log_level == LOG_QUIET else logging.WARNING)

    app.register_blueprint(api)

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'error': 'Not found'}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({'error': 'Method not allowed'}), 405

    return app


def cancel_on_exit():
    """Cancel a running analysis when the server shuts down."""
    if analysis_session.is_running:
        analysis_session.cancel()


def suppress_flask_banner():
    """Suppress Flask's development server banner and startup messages."""
    try:
        import flask.cli
        flask.cli.show_server_banner = lambda *args, **kwargs: None
    except (ImportError, AttributeError):
        pass

    logging.getLogger('werkzeug').setLevel(logging.ERROR)


def main():
    """Main entry point for the API server."""
    parser = argparse.ArgumentParser(
        description='TwinFinder - API server',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument(
        '-q', '--quiet',
        action='store_true',
        help='Quiet mode - suppress all output except errors'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Verbose mode - show all Flask request logs'
    )
    parser.add_argument(
        '--host',
        default='127.0.0.1',
        help='Interface to bind (default: 127.0.0.1)'
    )
    parser.add_argument(
        '-p', '--port',
        type=int,
        default=5000,
        help='Port to run the server on (default: 5000)'
    )

    args = parser.parse_args()

    if args.quiet:
        log_level = LOG_QUIET
    elif args.verbose:
        log_level = LOG_VERBOSE
    else:
        log_level = LOG_MINIMAL

    logging.basicConfig(
        level=logging.DEBUG if log_level == LOG_VERBOSE else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )

    url = f'http://{args.host}:{args.port}'

    if log_level >= LOG_MINIMAL:
        print()
        print("  TwinFinder API")
        print(f"  Server running at: {url}/api/status")
        print("  Press Ctrl+C to stop")
        print()

    atexit.register(cancel_on_exit)

    if log_level < LOG_VERBOSE:
        suppress_flask_banner()

    app = create_app(log_level)

    try:
        app.run(
            host=args.host,
            port=args.port,
            debug=False,
            threaded=True,
            use_reloader=False
        )
    except KeyboardInterrupt:
        if log_level >= LOG_MINIMAL:
            print("\n  Server stopped\n")


if __name__ == '__main__':
    main()
