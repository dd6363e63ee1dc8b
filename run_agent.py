#!/usr/bin/env python3
"""
JobScout operator CLI.

    python run_agent.py profile --cv resume.pdf --url https://linkedin.com/in/me
    python run_agent.py strategy "remote python roles, no agencies, fintech"
    python run_agent.py settings --email me@example.com --timezone Europe/Berlin
    python run_agent.py scan
    python run_agent.py matches
    python run_agent.py digest --test
    python run_agent.py serve
"""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent))

from jobscout.config import AppConfig, ensure_dirs, load_config
from jobscout.errors import InvalidTransition, JobScoutError, ScanFailed
from jobscout.log import get_logger
from jobscout.models import DigestRequest, MatchStatus
from jobscout.store import MatchStore

log = get_logger(__name__)

DEFAULT_USER = "local"


def _llm(config: AppConfig):
    from jobscout.llm import LLMClient

    if not config.llm_enabled:
        print("  GROQ_API_KEY is not set. Add it to .env first.")
        sys.exit(1)
    return LLMClient.from_config(config)


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False, default=str))


# ── Commands ─────────────────────────────────────────────────────────────


def cmd_profile(args, config: AppConfig, store: MatchStore) -> int:
    from jobscout.cv_text import extract_text
    from jobscout.synthesis import synthesize_profile

    if not (args.cv or args.url or args.info):
        loaded = store.load_profile(args.user)
        if loaded is None:
            print("  No profile yet. Pass --cv, --url or --info to create one.")
            return 1
        _print_json(loaded[0].to_dict())
        return 0

    cv_text = extract_text(Path(args.cv)) if args.cv else None
    profile, sources = synthesize_profile(
        _llm(config), cv_text=cv_text, profile_url=args.url, extra_info=args.info
    )
    store.save_profile(args.user, profile, sources)
    _print_json(profile.to_dict())
    return 0


def cmd_strategy(args, config: AppConfig, store: MatchStore) -> int:
    from jobscout.synthesis import refine_strategy

    if not args.thoughts:
        strategy = store.load_strategy(args.user)
        if strategy is None:
            print("  No strategy yet. Describe what you want, e.g.:")
            print('    python run_agent.py strategy "remote backend roles, no crypto"')
            return 1
        _print_json(strategy.to_dict())
        return 0

    strategy = refine_strategy(_llm(config), " ".join(args.thoughts))
    store.save_strategy(args.user, strategy)
    settings = store.load_settings(args.user)
    if strategy.priorities and (settings is None or not settings.scan_keywords):
        store.save_settings(args.user, scan_keywords=strategy.priorities[0])
        log.info("Scan keywords set to %r", strategy.priorities[0])
    _print_json(strategy.to_dict())
    return 0


def cmd_settings(args, config: AppConfig, store: MatchStore) -> int:
    changes = {
        "digest_email": args.email,
        "match_threshold": args.threshold,
        "scan_keywords": args.keywords,
        "scan_location": args.location,
        "timezone": args.timezone,
        "display_name": args.name,
    }
    changes = {k: v for k, v in changes.items() if v is not None}
    if args.automation is not None:
        changes["automation_enabled"] = args.automation == "on"
    if changes:
        settings = store.save_settings(args.user, **changes)
    else:
        settings = store.load_settings(args.user) or store.save_settings(args.user)
    _print_json(vars(settings))
    return 0


def cmd_scan(args, config: AppConfig, store: MatchStore) -> int:
    from jobscout.retry import RetryableCaller
    from jobscout.scan import ScanOrchestrator
    from jobscout.scorer import Scorer
    from jobscout.sources import get_sources

    llm = _llm(config)
    caller = RetryableCaller()
    orchestrator = ScanOrchestrator(
        Scorer(llm, caller),
        store,
        get_sources(config, llm, caller),
        delay_seconds=config.score_delay_seconds,
    )
    try:
        result = orchestrator.scan_user(args.user, args.keywords, args.location)
    except ValueError as exc:
        print(f"  {exc}. Run the profile and strategy commands first.")
        return 1
    except ScanFailed as exc:
        print(f"  {exc.user_message}")
        return 1

    print(f"\n  Scanned {result.candidate_count} jobs for {result.keywords!r} in {result.location!r}")
    print(f"  Saved {result.saved} matches {result.by_source}")
    for m in result.matches[:10]:
        print(f"    {m.score:>3}  {m.title} @ {m.company}  [{m.source}]")
    return 0


def cmd_matches(args, config: AppConfig, store: MatchStore) -> int:
    if args.shortlist:
        matches = store.list_matches(args.user, status=MatchStatus.ACCEPTED, order_by="created")
    else:
        matches = [
            m
            for m in store.list_matches(args.user, order_by="created")
            if m.status == MatchStatus.PENDING
        ]
    if not matches:
        print("  Nothing here yet.")
        return 0
    for m in matches:
        print(f"  {m.id}  {m.score:>3}  {m.title} @ {m.company}  ({m.location})")
        print(f"      {m.link}")
    return 0


def _set_status(status: MatchStatus):
    def run(args, config: AppConfig, store: MatchStore) -> int:
        try:
            match = store.update_status(args.user, args.match_id, status)
        except InvalidTransition as exc:
            print(f"  {exc}")
            return 1
        if match is None:
            print(f"  No match with id {args.match_id}")
            return 1
        print(f"  {match.title} @ {match.company} is now {match.status.value}")
        return 0

    return run


def cmd_digest(args, config: AppConfig, store: MatchStore) -> int:
    from jobscout.broadcast import DigestSender
    from jobscout.email_report import build_mailer

    sender = DigestSender(store, build_mailer(config), config)
    outcome = sender.send_for_user(
        args.user,
        DigestRequest(email=args.email, threshold=args.threshold, test=args.test, check=args.check),
    )
    _print_json(outcome.to_dict())
    return 0 if outcome.http_status < 400 else 1


def cmd_broadcast(args, config: AppConfig, store: MatchStore) -> int:
    from jobscout.run_daily import run_once

    outcomes = run_once(config, diagnostic=args.check)
    _print_json({"processed": len(outcomes), "results": [o.to_dict() for o in outcomes]})
    return 0


def cmd_token(args, config: AppConfig, store: MatchStore) -> int:
    from jobscout.auth import issue_user_token

    try:
        print(issue_user_token(config, args.user, args.email or ""))
    except ValueError as exc:
        print(f"  {exc}")
        return 1
    return 0


def cmd_serve(args, config: AppConfig, store: MatchStore) -> int:
    import uvicorn

    from jobscout.api import create_app

    uvicorn.run(create_app(config, store), host=args.host, port=args.port)
    return 0


# ── Parser ───────────────────────────────────────────────────────────────


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="run_agent.py", description="JobScout job matching agent")
    parser.add_argument("--config", help="Path to a YAML config file (default config/jobscout.yaml)")
    parser.add_argument("--user", default=DEFAULT_USER, help="User id (default: %(default)s)")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("profile", help="Build or show the master profile")
    p.add_argument("--cv", help="CV file (.pdf, .docx, .txt)")
    p.add_argument("--url", help="LinkedIn profile URL")
    p.add_argument("--info", help="Extra context in free text")
    p.set_defaults(func=cmd_profile)

    p = sub.add_parser("strategy", help="Refine or show the search strategy")
    p.add_argument("thoughts", nargs="*", help="What you are looking for, in your own words")
    p.set_defaults(func=cmd_strategy)

    p = sub.add_parser("settings", help="Update or show digest and scan settings")
    p.add_argument("--email", help="Digest recipient")
    p.add_argument("--threshold", type=float, help="Minimum match score for the digest")
    p.add_argument("--keywords", help="Default scan keywords")
    p.add_argument("--location", help="Default scan location")
    p.add_argument("--timezone", help="IANA timezone, e.g. Europe/Berlin")
    p.add_argument("--name", help="Display name")
    p.add_argument("--automation", choices=("on", "off"), help="Daily digest on/off")
    p.set_defaults(func=cmd_settings)

    p = sub.add_parser("scan", help="Search all sources and score the results")
    p.add_argument("--keywords")
    p.add_argument("--location")
    p.set_defaults(func=cmd_scan)

    p = sub.add_parser("matches", help="List active matches or the shortlist")
    p.add_argument("--shortlist", action="store_true")
    p.set_defaults(func=cmd_matches)

    for name, status, text in (
        ("accept", MatchStatus.ACCEPTED, "Shortlist a match"),
        ("dismiss", MatchStatus.DISMISSED, "Dismiss a match"),
        ("unshortlist", MatchStatus.PENDING, "Move a shortlisted match back to active"),
    ):
        p = sub.add_parser(name, help=text)
        p.add_argument("match_id")
        p.set_defaults(func=_set_status(status))

    p = sub.add_parser("digest", help="Send (or --check) the digest for one user")
    p.add_argument("--email")
    p.add_argument("--threshold", type=float)
    p.add_argument("--test", action="store_true", help="Ignore the time window; never stamps")
    p.add_argument("--check", action="store_true", help="Report what would be sent")
    p.set_defaults(func=cmd_digest)

    p = sub.add_parser("broadcast", help="Run one hourly broadcast now")
    p.add_argument("--check", action="store_true")
    p.set_defaults(func=cmd_broadcast)

    p = sub.add_parser("token", help="Issue a signed user token for the HTTP API")
    p.add_argument("--email")
    p.set_defaults(func=cmd_token)

    p = sub.add_parser("serve", help="Run the HTTP API")
    p.add_argument("--host", default="127.0.0.1")
    p.add_argument("--port", type=int, default=8000)
    p.set_defaults(func=cmd_serve)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    config = load_config(args.config)
    ensure_dirs(config)
    store = MatchStore(config.db_path)
    try:
        return args.func(args, config, store)
    except JobScoutError as exc:
        log.error("%s failed: %s", args.command, exc)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
