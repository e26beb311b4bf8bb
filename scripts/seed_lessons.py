#!/usr/bin/env python3
"""Load lesson words from a CSV file into PostgreSQL storage."""

import argparse
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.utils import parse_lesson_csv
from server.postgres_storage import PostgresStorage

logging.basicConfig(level=logging.INFO)


def main():
    parser = argparse.ArgumentParser(description='Seed lesson words into PostgreSQL')
    parser.add_argument('csv_file', help='CSV with lesson, word, sentence columns')
    parser.add_argument('--db-url', default=None, help='Database URL (default: $DATABASE_URL)')
    args = parser.parse_args()

    items = parse_lesson_csv(Path(args.csv_file).read_text(encoding='utf-8'))
    if not items:
        print(f"No valid lesson rows in {args.csv_file}")
        return 1

    storage = PostgresStorage(db_url=args.db_url)
    try:
        storage.seed_words(items)
    finally:
        storage.close()

    lessons = sorted({item.lesson_name for item in items})
    print(f"Seeded {len(items)} words across {len(lessons)} lessons")
    return 0


if __name__ == '__main__':
    sys.exit(main())
