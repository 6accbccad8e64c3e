#!/usr/bin/env python3
"""
Print the sample receipt without starting the server.
Useful for checking USB permissions and printer IDs after installation.
"""
import sys

from print_bridge.config import build_config
from print_bridge.main import configure_logging
from print_bridge.print_service import build_print_service

if __name__ == "__main__":
    config = build_config()
    configure_logging(config["debug"])
    service = build_print_service(config)

    print("Testing printer...\n")
    try:
        result = service.print_test()
        print(f"Success: {result['message']}")
        exit_code = 0
    except Exception as e:
        print(f"Error: {str(e)}")
        exit_code = 1
    finally:
        service.close_gracefully()

    sys.exit(exit_code)
