"""Load verdicts into the configured store.

Input is CSV with ``url,malicious`` per line (``#`` comments and blank lines
ignored). Each URL is written the way a client would put it after
``/urlinfo/1/`` and goes through the same decoding as a live request, so
seeded entries are hit by later requests.
"""

from __future__ import annotations

import argparse
import csv
import logging
import sys
from typing import Iterable, List, Tuple

from .config import load_settings
from .exceptions import MalformedURLError, ZapitException
from .logging_utils import configure_logging
from .models import URLInfo
from .normalizer import decode_request_target, normalize
from .storage import Database, open_database

_LOG = logging.getLogger('zapit.seed')

TRUE_VALUES = ('1', 'true', 'yes', 'malicious')
FALSE_VALUES = ('0', 'false', 'no', 'safe')


def parse_rows(lines: Iterable[str]) -> Tuple[List[URLInfo], List[str]]:
    """Parse CSV lines into canonical verdicts plus a list of rejected-line messages.

    Rejections are reported with their 1-based line number in the input.
    """
    verdicts: List[URLInfo] = []
    rejected: List[str] = []
    numbered = [(n, l) for n, l in enumerate(lines, start=1)
                if l.strip() and not l.lstrip().startswith('#')]
    rows = csv.reader(l for _, l in numbered)
    for (lineno, _), row in zip(numbered, rows):
        if len(row) != 2:
            rejected.append(f'line {lineno}: expected 2 columns, got {len(row)}')
            continue
        raw, flag = row[0].strip(), row[1].strip().lower()
        if flag in TRUE_VALUES:
            malicious = True
        elif flag in FALSE_VALUES:
            malicious = False
        else:
            rejected.append(f'line {lineno}: invalid malicious flag {row[1]!r}')
            continue
        path, _, query = raw.encode('utf-8').partition(b'?')
        try:
            verdicts.append(URLInfo(url=normalize(decode_request_target(path, query)), malicious=malicious))
        except MalformedURLError as e:
            rejected.append(f'line {lineno}: {e.message}')
    return verdicts, rejected


def seed_verdicts(db: Database, verdicts: Iterable[URLInfo]) -> int:
    """Write ``verdicts`` keyed by their canonical URL. Stops on the first storage error."""
    count = 0
    for v in verdicts:
        db.put(v.url, v)
        count += 1
    return count


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description='Seed URL verdicts into the zapit store')
    ap.add_argument('csv', nargs='?', help='CSV file with url,malicious rows (default: stdin)')
    ap.add_argument('--strict', action='store_true', help='Exit non-zero if any row is rejected')
    args = ap.parse_args(argv)

    settings = load_settings()
    configure_logging(settings.log_level, settings.log_file)
    if args.csv:
        with open(args.csv, encoding='utf-8') as fh:
            verdicts, rejected = parse_rows(fh.read().splitlines())
    else:
        verdicts, rejected = parse_rows(sys.stdin.read().splitlines())
    for msg in rejected:
        _LOG.warning('rejected %s', msg)

    try:
        db = open_database(settings)
    except ZapitException as e:
        _LOG.critical("Can't connect to db: %s", e)
        return 1
    try:
        written = seed_verdicts(db, verdicts)
    except ZapitException as e:
        _LOG.error('seeding aborted: %s', e)
        written = None
    try:
        db.close()
    except ZapitException as e:
        _LOG.error('closing storage failed: %s', e)
        return 1
    if written is None:
        return 1
    print(f'seeded={written} rejected={len(rejected)}')
    return 1 if (args.strict and rejected) else 0
