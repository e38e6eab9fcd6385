"""ClientDesk CLI.

Usage:
    clientdesk serve --port 5000
    clientdesk remind deadlines
    clientdesk stats
"""

import argparse
import asyncio
import json
import os
import sys

from .config import load_config
from .reminders import JOBS


def _serve(args) -> int:
    import uvicorn

    if args.config:
        # The factory runs in the server process and reads CONFIG_PATH
        os.environ["CONFIG_PATH"] = args.config
    uvicorn.run(
        "clientdesk.main:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload,
    )
    return 0


def _remind(args) -> int:
    from .main import create_app

    app = create_app(load_config(args.config))
    result = asyncio.run(app.state.reminders.run(args.job))
    print(f"🔔 {args.job}: {json.dumps(result)}")
    return 1 if result.get("failed") else 0


def _stats(args) -> int:
    from .main import create_app
    from .stats import dashboard_overview

    app = create_app(load_config(args.config))
    repos = app.state.repos
    print(json.dumps(dashboard_overview(repos, repos.clock.now()), indent=2))
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="ClientDesk - client, project and invoice management",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  clientdesk serve --port 5000
  clientdesk remind invoices
  clientdesk stats --config config/clientdesk.yml
""",
    )
    parser.add_argument("--config", help="Path to YAML config (default: $CONFIG_PATH)")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the API server")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=5000)
    serve.add_argument("--reload", action="store_true")
    serve.set_defaults(func=_serve)

    remind = sub.add_parser("remind", help="Run one reminder job now")
    remind.add_argument("job", choices=list(JOBS))
    remind.set_defaults(func=_remind)

    stats = sub.add_parser("stats", help="Print the dashboard overview as JSON")
    stats.set_defaults(func=_stats)

    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
