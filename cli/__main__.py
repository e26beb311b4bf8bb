"""Entry point for spelldle CLI client."""

import argparse
import sys

import requests

from cli.api_client import SpelldleAPIClient
from cli.console import ConsoleUI


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Spelldle - spelling practice')
    parser.add_argument(
        '--server',
        default='http://localhost:8000',
        help='Server URL (default: http://localhost:8000)'
    )
    parser.add_argument(
        '--user',
        default='default',
        help='User ID (default: default)'
    )
    parser.add_argument(
        '--lesson',
        help='Start this lesson directly instead of choosing from the menu'
    )
    parser.add_argument(
        '--no-reviews',
        dest='include_reviews',
        action='store_false',
        help='Practice only the lesson words, without due reviews'
    )
    parser.add_argument(
        '--due',
        action='store_true',
        help='List due review words and exit'
    )
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    client = SpelldleAPIClient(base_url=args.server, user_id=args.user)
    ui = ConsoleUI(client)

    try:
        if args.due:
            ui.print_due_reviews()
        else:
            ui.run(lesson_name=args.lesson, include_reviews=args.include_reviews)
    except requests.HTTPError as e:
        print(f"Error: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        print('\nGoodbye!')
        sys.exit(0)


if __name__ == '__main__':
    main()
