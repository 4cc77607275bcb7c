# run.py
# Entry point. Config and wiring only, no logic lives here.
#
#   goldcast-cog serve
#   goldcast-cog manifest [--json]
#   goldcast-cog run EventFieldEqualsStep --data '{"eventId": "42", "field": "title", "expectation": "Demo"}'
#   goldcast-cog check "the title field on goldcast event 42 should be Demo"
#
# Token: --token or GOLDCAST_TOKEN.

import argparse
import asyncio
import json
import os

from goldcast_cog import display
from goldcast_cog.client import AuthenticationError, ClientWrapper
from goldcast_cog.config import Settings
from goldcast_cog.models import Outcome, RunStepRequest, RunStepResponse, Step
from goldcast_cog.registry import STEPS, StepRegistry


async def _execute(step: Step, token: str, settings: Settings, registry: StepRegistry) -> RunStepResponse:
    async with ClientWrapper({"token": token}, base_url=settings.api_url, timeout=settings.timeout) as client:
        return await registry.dispatch(RunStepRequest(step=step), client)


def _run_step(step: Step, args: argparse.Namespace, settings: Settings, registry: StepRegistry) -> int:
    try:
        response = asyncio.run(_execute(step, args.token, settings, registry))
    except AuthenticationError as exc:
        raise SystemExit(f"{exc} Pass --token or set GOLDCAST_TOKEN.") from exc
    display.step_result(step.step_id, response, show_records=not args.quiet)
    return 0 if response.outcome == Outcome.PASSED else 1


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="goldcast-cog", description="Goldcast Cog for scenario validation")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("serve", help="Serve the Cog contract over HTTP")

    manifest = sub.add_parser("manifest", help="Print the Cog manifest")
    manifest.add_argument("--json", action="store_true", help="Emit raw JSON")

    for name, help_text in (("run", "Run one step by id"), ("check", "Run the step matching a sentence")):
        cmd = sub.add_parser(name, help=help_text)
        if name == "run":
            cmd.add_argument("step_id", help="Step id, e.g. EventFieldEqualsStep")
            cmd.add_argument("--data", default="{}", help="Step data as a JSON object")
        else:
            cmd.add_argument("sentence", help="Natural-language step, quoted")
        cmd.add_argument("--token", default=os.getenv("GOLDCAST_TOKEN", ""), help="Goldcast access token")
        cmd.add_argument("--quiet", action="store_true", help="Hide checked records")

    args = parser.parse_args(argv)
    settings = Settings.from_env()
    display.configure_logging(settings.log_level)
    registry = StepRegistry(STEPS)

    if args.command == "serve":
        import uvicorn

        from goldcast_cog.server import create_app

        uvicorn.run(create_app(settings, registry), host=settings.host, port=settings.port)
        return 0

    if args.command == "manifest":
        cog = registry.manifest()
        if args.json:
            print(cog.model_dump_json(indent=2))
        else:
            display.manifest(cog)
        return 0

    if args.command == "run":
        try:
            data = json.loads(args.data)
        except json.JSONDecodeError as exc:
            raise SystemExit(f"--data is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise SystemExit("--data must be a JSON object")
        return _run_step(Step(step_id=args.step_id, data=data), args, settings, registry)

    step = registry.match(args.sentence)
    if step is None:
        display.no_match(args.sentence)
        return 2
    return _run_step(step, args, settings, registry)


if __name__ == "__main__":
    raise SystemExit(main())
