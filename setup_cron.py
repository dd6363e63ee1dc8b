#!/usr/bin/env python3
"""
Install the hourly cron entry for the digest broadcast.
Each run only mails users whose local time is DIGEST_SEND_HOUR (default 8).
Run once: python setup_cron.py
"""
from __future__ import annotations

import subprocess
from pathlib import Path

ROOT = Path(__file__).resolve().parent
venv_python = ROOT / ".venv" / "bin" / "python"
log_file = ROOT / "logs" / "cron.log"
entry = f"0 * * * * cd {ROOT} && {venv_python} -m jobscout.run_daily --once >> {log_file} 2>&1"


def main():
    if not venv_python.exists():
        print("Error: .venv not found. Run: python -m venv .venv && pip install -e .")
        return 1
    try:
        out = subprocess.run(
            ["crontab", "-l"],
            capture_output=True,
            text=True,
            timeout=5,
        )
        existing = (out.stdout or "").strip() if out.returncode == 0 else ""
        if entry in existing:
            print("Cron entry already present. No change.")
            return 0
        new_crontab = (existing + "\n" + entry).strip() if existing else entry
        proc = subprocess.run(
            ["crontab", "-"],
            input=new_crontab + "\n",
            capture_output=True,
            text=True,
            timeout=5,
        )
        if proc.returncode != 0:
            _write_crontab_file(new_crontab)
            print("Could not install crontab automatically. Run manually:")
            print(f"  crontab {ROOT / 'crontab.txt'}")
            return 1
        log_file.parent.mkdir(parents=True, exist_ok=True)
        print("Cron installed: digest broadcast every hour")
        print(f"  Entry: {entry}")
        return 0
    except subprocess.TimeoutExpired:
        _write_crontab_file(entry)
        print("Crontab timed out. To install manually, run:")
        print(f"  crontab {ROOT / 'crontab.txt'}")
        return 1
    except FileNotFoundError:
        print("crontab not found. On Windows use Task Scheduler; on Mac/Linux ensure cron is available.")
        _write_crontab_file(entry)
        return 1


def _write_crontab_file(content: str) -> None:
    path = ROOT / "crontab.txt"
    path.write_text(content + "\n", encoding="utf-8")
    print(f"Wrote {path}")


if __name__ == "__main__":
    raise SystemExit(main())
