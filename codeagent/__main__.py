"""CLI entry point for codeagent."""

import argparse
import asyncio
import sys


def main():
    parser = argparse.ArgumentParser(description="Coding agent with file, shell and Gmail tools")
    parser.add_argument("--config", default=None, help="Path to JSON config file")
    parser.add_argument("--log-level", default=None, help="Override log level (DEBUG, INFO, WARNING, ...)")
    args = parser.parse_args()

    from codeagent.app import CodeAgent
    from codeagent.log import logger

    try:
        app = CodeAgent(config_path=args.config, log_level=args.log_level)
    except ValueError as e:
        logger.error(str(e))
        sys.exit(1)

    try:
        asyncio.run(app.run())
    except KeyboardInterrupt:
        print("\nGoodbye!")


if __name__ == "__main__":
    main()
