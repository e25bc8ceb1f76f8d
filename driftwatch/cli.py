"""
Command line entry point: one run over every configured target, meant for cron-style scheduling.
Exits non-zero only when the run itself cannot start; single target failures are reported, not fatal.
"""

import argparse
import sys

from tabulate import tabulate

from driftwatch import __version__
from driftwatch.alerts import LoggingAlertSink
from driftwatch.config import ConfigError, RunConfig, load_targets
from driftwatch.core import logger, setup_logger
from driftwatch.fingerprint.extractor import available_kinds, get_extractor
from driftwatch.probe.fetcher import RemoteProbe
from driftwatch.session import DriftRunManager
from driftwatch.state.json_storage import JsonFileStateStore


def build_parser():
    parser = argparse.ArgumentParser(
        prog="driftwatch",
        description="Probe remote assets once and report fingerprint drift since the last run.",
    )
    parser.add_argument("--config", dest="config_path", help="Target list (JSON object of id -> url)")
    parser.add_argument("--state-dir", dest="state_dir", help="Directory holding one JSON record per target")
    parser.add_argument("--kind", choices=available_kinds(), help="Fingerprint extraction kind")
    parser.add_argument("--max-bytes", dest="max_bytes", type=int, help="Leading bytes read for text extraction")
    parser.add_argument("--timeout-ms", dest="timeout_ms", type=int, help="Per-probe timeout in milliseconds")
    parser.add_argument("--workers", dest="max_workers", type=int, help="Targets probed concurrently")
    parser.add_argument("--log-file", dest="log_file", help="Also write log lines to this file")
    parser.add_argument("--show-state", action="store_true", help="List stored records instead of probing")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def show_state(store: JsonFileStateStore, kind: str) -> None:
    field_names = get_extractor(kind).FIELDS
    rows = []
    for entry in store.list_records(kind):
        if entry.record is None:
            rows.append([entry.target_id, "-", "-"] + ["-"] * len(field_names) + [entry.error])
            continue
        fp = entry.record.fingerprint
        rows.append(
            [entry.target_id, entry.record.observed_at.isoformat(), entry.record.locator]
            + [fp.get(name) for name in field_names]
            + [""]
        )

    if not rows:
        print(f"No stored '{kind}' records in {store.state_dir}")
        return
    headers = ["Target", "Checked At", "URL"] + list(field_names) + ["Error"]
    print(tabulate(rows, headers=headers, tablefmt="simple", missingval="null"))


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = RunConfig.from_env(
            config_path=args.config_path,
            state_dir=args.state_dir,
            kind=args.kind,
            max_bytes=args.max_bytes,
            timeout_ms=args.timeout_ms,
            max_workers=args.max_workers,
            log_file=args.log_file,
        )
    except ConfigError as e:
        logger.error(f"CONFIG_ERROR: {e}")
        return 1

    if config.log_file:
        setup_logger(log_file=config.log_file)

    store = JsonFileStateStore(
        config.state_dir,
        field_sets={kind: get_extractor(kind).FIELDS for kind in available_kinds()},
    )

    if args.show_state:
        show_state(store, config.kind)
        return 0

    try:
        targets = load_targets(config.config_path)
    except ConfigError as e:
        logger.error(f"CONFIG_ERROR: {e}")
        return 1

    try:
        store.ensure_dir()
    except OSError as e:
        logger.error(f"STATE_ERROR: cannot create state directory {config.state_dir}: {e}")
        return 1

    probe = RemoteProbe(
        timeout_ms=config.timeout_ms,
        max_bytes=config.max_bytes,
        user_agent=config.user_agent,
    )
    manager = DriftRunManager(config, store, probe, LoggingAlertSink())
    report = manager.run(targets)

    manager.print_summary(report)
    return 0


if __name__ == "__main__":
    sys.exit(main())
