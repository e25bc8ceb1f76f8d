"""
Cron wrapper: runs main.py once, tees everything into logs/drift_run_<ts>.txt,
then reads the run's own summary block to decide the wrapper's exit status.

Exit codes: the child's code when it failed to start, 1 when no summary was printed,
2 with --strict when any target failed, 0 otherwise.
"""

import argparse
import os
import subprocess
import sys
from datetime import datetime

from driftwatch.session import SUMMARY_MARKER, TargetStatus, parse_summary_counts

FAILED_STATUSES = (TargetStatus.FETCH_FAILED, TargetStatus.STATE_FAILED, TargetStatus.ERROR)


def wrapper_exit_code(returncode, counts, strict=False):
    if returncode != 0:
        return returncode
    if counts is None:
        return 1
    if strict and any(counts[status] for status in FAILED_STATUSES):
        return 2
    return 0


def run_drift_check(argv=None):
    parser = argparse.ArgumentParser(description="Run one drift check with captured logs.", allow_abbrev=False)
    parser.add_argument("--strict", action="store_true", help="Exit 2 when any target failed")
    parser.add_argument("--log-dir", default="logs")
    args, forwarded = parser.parse_known_args(argv)

    # Unbuffered so the tee shows lines as they happen; every other flag goes to main.py
    cmd = [sys.executable, "-u", "main.py"] + forwarded

    os.makedirs(args.log_dir, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_filename = os.path.join(args.log_dir, f"drift_run_{timestamp}.txt")

    print(f"[WRAPPER] Log file: {log_filename}")
    print(f"[WRAPPER] Command:  {' '.join(cmd)}\n")

    output = []
    with open(log_filename, "w", encoding="utf-8") as f:
        f.write(f"--- Drift Run Log: {timestamp} ---\n")
        f.write(f"--- Command: {' '.join(cmd)} ---\n\n")

        process = subprocess.Popen(cmd, stdout=subprocess.PIPE, stderr=subprocess.STDOUT, text=True, bufsize=1)
        for line in process.stdout:
            sys.stdout.write(line)
            f.write(line)
            f.flush()
            output.append(line)
        process.wait()

        counts = parse_summary_counts(output)
        code = wrapper_exit_code(process.returncode, counts, strict=args.strict)

        f.write(f"\n--- PROCESS EXIT CODE: {process.returncode} ---\n")
        if counts is None:
            f.write(f"--- '{SUMMARY_MARKER}' NOT FOUND: RUN INVALID ---\n")
        else:
            digest = " ".join(f"{status.value.lower()}={n}" for status, n in counts.items())
            f.write(f"--- RESULT: {digest} ---\n")
        f.write(f"--- WRAPPER EXIT CODE: {code} ---\n")

    if counts is None and process.returncode == 0:
        print("\n[WRAPPER] ERROR: run finished without its summary block")
    elif counts is not None and counts[TargetStatus.CHANGED]:
        print(f"\n[WRAPPER] {counts[TargetStatus.CHANGED]} target(s) changed, see {log_filename}")
    return code


if __name__ == "__main__":
    sys.exit(run_drift_check())
