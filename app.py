#!/usr/bin/env python3
"""
Command-line entry point for the receipt print bridge.
"""
import argparse
import sys

from print_bridge.main import main

if __name__ == "__main__":
    # Parse command line arguments
    parser = argparse.ArgumentParser(description='Start the receipt print bridge')
    parser.add_argument('--host', help='Address to listen on (default: HOST or 0.0.0.0)')
    parser.add_argument('--port', type=int, help='Port to listen on (default: PORT or 3344)')
    parser.add_argument('--debug', action='store_true', default=None,
                        help='Log receipt contents and include error details in responses')
    args = parser.parse_args()

    sys.exit(main(host=args.host, port=args.port, debug=args.debug))
